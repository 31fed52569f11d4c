import json
import logging
from core.locale import activity_display_name
from core.models import AnalysisResult, ClassifiedCluster
from datetime import UTC, datetime
from pathlib import Path

logger = logging.getLogger(__name__)


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def cluster_to_dict(cluster: ClassifiedCluster) -> dict:
    return {
        'name': cluster.name,
        'address': cluster.address,
        'coordinates': {'latitude': cluster.latitude, 'longitude': cluster.longitude},
        'start_time': _isoformat(cluster.start_time),
        'end_time': _isoformat(cluster.end_time),
        'photo_count': cluster.photo_count,
        'photos': [str(photo.handle) for photo in cluster.photos],
        'place_type': cluster.place_type,
        'locality': cluster.locality,
        'sub_locality': cluster.sub_locality,
        'thoroughfare': cluster.thoroughfare,
        'geocoded': cluster.geocoded,
        'activity': cluster.activity.value,
        'activity_label': cluster.activity_label,
    }


def result_to_dict(result: AnalysisResult) -> dict:
    """JSON-compatible representation of an analysis result"""
    return {
        'metadata': {
            'analysis_date': datetime.now(UTC).isoformat(),
            'photo_count': result.photo_count,
            'place_count': result.place_count,
            'total_distance_km': round(result.total_distance_km, 3),
            'day_count': result.day_count,
            'date_range': {'start': _isoformat(result.start_date), 'end': _isoformat(result.end_date)},
        },
        'title': result.title,
        'theme': result.theme,
        'layout_type': result.layout_type,
        'places': [cluster_to_dict(cluster) for cluster in result.places],
    }


class TripReportGenerator:
    """Generate a human-readable markdown summary of an analyzed trip"""

    def __init__(self, language: str | None = None):
        self.language = language
        self.report_lines = []

    def generate_header_section(self, result: AnalysisResult) -> None:
        start = result.start_date.strftime('%Y-%m-%d')
        end = result.end_date.strftime('%Y-%m-%d')

        self.report_lines.extend(
            [
                f"# {result.title}",
                "",
                f"**Period:** {start} to {end}",
                "",
                "## Overview",
                "",
                f"- **Photos:** {result.photo_count}",
                f"- **Places:** {result.place_count}",
                f"- **Total Distance:** {result.total_distance_km:.1f} km",
                f"- **Days:** {result.day_count}",
            ]
        )
        if result.theme:
            self.report_lines.append(f"- **Theme:** {result.theme}")
        self.report_lines.append("")

    def generate_timeline_section(self, result: AnalysisResult) -> None:
        self.report_lines.extend(["## Timeline", ""])

        if not result.places:
            self.report_lines.extend(["No places met the clustering criteria.", ""])
            return

        for i, place in enumerate(result.places, 1):
            activity = activity_display_name(place.activity, self.language)
            times = place.start_time.strftime('%Y-%m-%d %H:%M')
            if place.end_time > place.start_time:
                times += f" - {place.end_time.strftime('%H:%M')}"

            self.report_lines.append(f"{i}. {place.activity.emoji} **{place.name}** ({activity}: {place.activity_label})")
            self.report_lines.append(f"   - {times}, {place.photo_count} photos")
            if place.address:
                self.report_lines.append(f"   - {place.address}")

        self.report_lines.append("")

    def generate_report(self, result: AnalysisResult) -> str:
        self.report_lines = []
        self.generate_header_section(result)
        self.generate_timeline_section(result)
        return '\n'.join(self.report_lines)


def write_outputs(result: AnalysisResult, output_dir: Path, result_file: str, summary_file: str, language=None) -> bool:
    """Write the JSON result and markdown summary to the output directory"""
    try:
        output_dir.mkdir(parents=True, exist_ok=True)

        with open(output_dir / result_file, 'w') as f:
            json.dump(result_to_dict(result), f, indent=2, ensure_ascii=False)

        with open(output_dir / summary_file, 'w') as f:
            f.write(TripReportGenerator(language).generate_report(result))

        logger.info(f"Output written to {output_dir / result_file} and {output_dir / summary_file}")
        return True

    except OSError as e:
        logger.error(f"Failed to write analysis output: {e}")
        return False
