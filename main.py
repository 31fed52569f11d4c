#!/usr/bin/env python

"""
Trip Trace - reconstruct place visits from geotagged photos

Groups photos into place visits by time and distance, names each visit by
reverse geocoding, infers the activity, and summarizes the whole set as a trip.

Usage:
    main.py [command] [options]

    Default command is 'analyze' if none specified.

Commands:
    analyze: Analyze Google Takeout photo metadata sidecars into a trip summary (default)
    cache-stats: Display geocoding cache statistics and clean expired entries
    cache-clear: Clear all geocoding cache entries

Options:
    --photos-dir: Directory of photo JSON sidecars (default: takeout/photos)
    --output-dir: Path to output directory (default: results)
    --language: Display language for names and labels (en, ko)
    --distance-threshold: Meters within which photos count as the same place
    --time-threshold: Seconds within which photos count as the same visit
    --dry-run: Show what would be done without geocoding or writing files
    --verbose: Enable verbose logging output
"""

import argparse
import logging
import signal
import sys
import threading
from config import (
    ANALYSIS_RESULT_FILE,
    CLUSTER_DISTANCE_THRESHOLD_METERS,
    CLUSTER_TIME_THRESHOLD_SECONDS,
    LANGUAGE,
    OUTPUT_DIR,
    PHOTOS_DIR,
    TRIP_SUMMARY_FILE,
)
from core.clustering import ClusteringEngine
from core.errors import AnalysisCancelledError, NoLocationDataError
from core.metadata import SidecarMetadataExtractor, discover_sidecars
from core.models import ProgressEvent
from core.pipeline import AnalysisPipeline
from core.report import write_outputs
from pathlib import Path
from utils.geocoding import GeocodingCache, NominatimReverseGeocoder

logger = logging.getLogger(__name__)


def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Trip Trace - reconstruct place visits from geotagged photos",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument('command', nargs='?', default='analyze', help='Command to execute (default: analyze)')
    parser.add_argument('--photos-dir', type=Path, default=PHOTOS_DIR, help='Directory of photo JSON sidecars')
    parser.add_argument('--output-dir', type=Path, default=OUTPUT_DIR, help='Path to output directory')
    parser.add_argument('--language', default=LANGUAGE, help='Display language (en, ko)')
    parser.add_argument(
        '--distance-threshold',
        type=float,
        default=CLUSTER_DISTANCE_THRESHOLD_METERS,
        help='Same-place distance threshold in meters',
    )
    parser.add_argument(
        '--time-threshold',
        type=float,
        default=CLUSTER_TIME_THRESHOLD_SECONDS,
        help='Same-visit time threshold in seconds',
    )
    parser.add_argument('--dry-run', action='store_true', help='Show what would be done without making changes')
    parser.add_argument('--verbose', action='store_true', help='Enable verbose logging output')

    return parser.parse_args(argv)


def setup_logging(verbose: bool = False):
    """Configure logging based on verbosity level"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format='%(asctime)s - %(levelname)s - %(message)s', force=True)


def log_progress(event: ProgressEvent):
    logger.info(f"[{event.progress * 100:3.0f}%] {event.description}")


def run_analysis(args) -> bool:
    """Analyze the photos directory and write the trip summary"""
    sidecars = discover_sidecars(args.photos_dir)

    if args.dry_run:
        logger.info(f"DRY RUN: Would analyze {len(sidecars)} photos from {args.photos_dir}")
        logger.info(f"DRY RUN: Would write {args.output_dir / ANALYSIS_RESULT_FILE} and {TRIP_SUMMARY_FILE}")
        return True

    pipeline = AnalysisPipeline(
        extractor=SidecarMetadataExtractor(),
        geocoder=NominatimReverseGeocoder(language=args.language),
        engine=ClusteringEngine(distance_threshold=args.distance_threshold, time_threshold=args.time_threshold),
        language=args.language,
    )

    cancel_event = threading.Event()
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: cancel_event.set())

    try:
        result = pipeline.analyze(sidecars, cancel_event=cancel_event, on_progress=log_progress)
    except NoLocationDataError as e:
        logger.error(f"{e} - nothing to analyze")
        return False
    except AnalysisCancelledError as e:
        logger.warning(str(e))
        return False
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    print("\n=== Trip Analysis ===")
    print(f"Title: {result.title}")
    print(f"Period: {result.start_date:%Y-%m-%d} to {result.end_date:%Y-%m-%d}")
    print(f"Photos: {result.photo_count}")
    print(f"Places: {result.place_count}")
    print(f"Total distance: {result.total_distance_km:.1f} km")

    return write_outputs(result, args.output_dir, ANALYSIS_RESULT_FILE, TRIP_SUMMARY_FILE, args.language)


def main(argv=None):
    args = parse_arguments(argv)

    # Setup logging
    setup_logging(args.verbose)

    command = args.command

    if command == "analyze":
        success = run_analysis(args)
        sys.exit(0 if success else 1)

    elif command == "cache-stats":
        cache = GeocodingCache()
        stats = cache.get_stats()

        print("\n=== Geocoding Cache Statistics ===")
        print(f"Total entries: {stats['total_entries']}")
        print(f"Cache hits: {stats['cache_hits']}")
        print(f"Cache misses: {stats['cache_misses']}")
        print(f"Hit ratio: {stats['hit_ratio_percent']}%")
        print(f"Expiration: {stats['expiration_days']} days")
        print(f"Created: {stats['created']}")
        print(f"Last updated: {stats['last_updated']}")

        # Clean expired entries
        expired_count = cache.clean_expired()
        if expired_count > 0:
            print(f"Cleaned {expired_count} expired entries")

        sys.exit(0)

    elif command == "cache-clear":
        cache = GeocodingCache()
        cache.clear()
        print("Cache cleared successfully")
        sys.exit(0)

    else:
        print(__doc__.strip())
        sys.exit(2)


if __name__ == "__main__":
    main()
