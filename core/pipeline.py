import logging
import threading
from collections import Counter
from collections.abc import Callable, Iterable, Iterator
from config import (
    GEOCODE_PROGRESS_SPAN,
    GRID_LAYOUT_PLACE_LIMIT,
    MAGAZINE_LAYOUT_PHOTO_LIMIT,
    PIPELINE_STAGES,
    THEME_DOMINANCE_RATIO,
)
from core.activity import ActivityClassifier
from core.clustering import ClusteringEngine
from core.errors import AnalysisCancelledError, AnalysisError, GeocodeError, NoLocationDataError
from core.locale import resolve_language, translate
from core.metadata import MetadataExtractor
from core.models import (
    ActivityType,
    AnalysisResult,
    ClassifiedCluster,
    GeocodedCluster,
    PhotoPoint,
    PipelineOutcome,
    ProgressEvent,
    RawCluster,
    Stage,
    utc_now,
)
from dataclasses import fields
from datetime import datetime
from utils.geo import total_distance_km
from utils.geocoding import ReverseGeocoder

logger = logging.getLogger(__name__)

STAGE_PROGRESS = {Stage(step['name']): step['progress'] for step in PIPELINE_STAGES}

THEME_KEYS = {
    ActivityType.CAFE: 'theme.cafe',
    ActivityType.RESTAURANT: 'theme.restaurant',
    ActivityType.BEACH: 'theme.beach',
    ActivityType.MOUNTAIN: 'theme.mountain',
    ActivityType.CULTURE: 'theme.culture',
    ActivityType.TOURIST: 'theme.culture',
    ActivityType.SHOPPING: 'theme.shopping',
}


def cluster_fields(cluster: RawCluster, cls: type) -> dict:
    """Field values of `cluster` that also exist on the base stage type `cls`"""
    return {f.name: getattr(cluster, f.name) for f in fields(cls)}


class AnalysisPipeline:
    """
    Reconstruct place visits from a set of photos

    Stages run strictly in order: extract metadata, filter GPS photos, sort,
    cluster, geocode each cluster, classify each cluster, build the result.
    Every collaborator is injected so the pipeline can run without network access.
    """

    def __init__(
        self,
        extractor: MetadataExtractor,
        geocoder: ReverseGeocoder,
        classifier: ActivityClassifier | None = None,
        engine: ClusteringEngine | None = None,
        language: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.extractor = extractor
        self.geocoder = geocoder
        self.language = resolve_language(language)
        self.clock = clock or utc_now
        self.classifier = classifier or ActivityClassifier(language=self.language, clock=self.clock)
        self.engine = engine or ClusteringEngine(clock=self.clock)

    def _event(self, stage: Stage, progress: float | None = None) -> ProgressEvent:
        if progress is None:
            progress = STAGE_PROGRESS[stage]
        return ProgressEvent(
            stage=stage,
            progress=progress,
            description=translate(f"stage.{stage.value}", self.language),
        )

    def _check_cancelled(self, cancel_event: threading.Event | None, stage: Stage):
        if cancel_event is not None and cancel_event.is_set():
            raise AnalysisCancelledError(stage.value)

    def extract_metadata(self, handles: list) -> list[PhotoPoint]:
        points = [self.extractor(handle) for handle in handles]

        missing_time = sum(1 for point in points if point.timestamp is None)
        missing_gps = sum(1 for point in points if not point.has_gps)
        if missing_time:
            logger.warning(f"{missing_time} photos have no capture time (current time is used)")
        logger.info(f"Photos without GPS: {missing_gps} of {len(points)}")

        return points

    def filter_gps(self, points: list[PhotoPoint]) -> list[PhotoPoint]:
        gps_points = [point for point in points if point.has_gps]
        if not gps_points:
            raise NoLocationDataError(len(points))
        return gps_points

    def sort_points(self, points: list[PhotoPoint]) -> list[PhotoPoint]:
        now = self.clock()
        return sorted(points, key=lambda point: point.timestamp or now)

    def geocode_cluster(self, cluster: RawCluster) -> GeocodedCluster:
        """Reverse geocode one cluster; failures leave placeholder name and address"""
        try:
            address = self.geocoder.reverse_geocode(cluster.latitude, cluster.longitude)
        except GeocodeError as e:
            logger.warning(f"Geocoding failed for ({cluster.latitude:.5f}, {cluster.longitude:.5f}): {e}")
            return GeocodedCluster(
                **cluster_fields(cluster, RawCluster),
                name=translate('unknown_place', self.language),
                address='',
            )

        return GeocodedCluster(
            **cluster_fields(cluster, RawCluster),
            name=address.name,
            address=address.full_address,
            place_type=address.place_type,
            locality=address.locality,
            sub_locality=address.sub_locality,
            thoroughfare=address.thoroughfare,
            geocoded=True,
        )

    def classify_cluster(self, cluster: GeocodedCluster) -> ClassifiedCluster:
        activity = self.classifier.infer(cluster.place_type, cluster.start_time)
        return ClassifiedCluster(
            **cluster_fields(cluster, GeocodedCluster),
            activity=activity,
            activity_label=self.classifier.label_for_time(activity, cluster.start_time),
        )

    def build_title(self, clusters: list[ClassifiedCluster], start_date: datetime) -> str:
        placeholder = translate('unknown_place', self.language)
        named = next((cluster for cluster in clusters if cluster.geocoded and cluster.name != placeholder), None)
        if named is not None:
            return translate('trip_title', self.language, name=named.name)

        local_start = self.classifier.localize(start_date)
        return translate(
            'date_trip_title',
            self.language,
            month=local_start.month,
            day=local_start.day,
            month_name=local_start.strftime('%B'),
        )

    def determine_theme(self, clusters: list[ClassifiedCluster]) -> str | None:
        """Theme from an activity that accounts for a large enough share of the places"""
        if not clusters:
            return None

        activity, count = Counter(cluster.activity for cluster in clusters).most_common(1)[0]
        if count / len(clusters) < THEME_DOMINANCE_RATIO or activity not in THEME_KEYS:
            return None

        return translate(THEME_KEYS[activity], self.language)

    def determine_layout(self, photo_count: int, place_count: int) -> str:
        if photo_count < MAGAZINE_LAYOUT_PHOTO_LIMIT:
            return 'magazine'
        if place_count > GRID_LAYOUT_PLACE_LIMIT:
            return 'grid'
        return 'timeline'

    def count_trip_days(self, clusters: list[ClassifiedCluster]) -> int:
        if not clusters:
            return 1

        first_day = self.classifier.localize(clusters[0].start_time).date()
        last_day = self.classifier.localize(clusters[-1].end_time).date()
        return max(1, (last_day - first_day).days + 1)

    def build_result(
        self, photo_count: int, gps_points: list[PhotoPoint], clusters: list[ClassifiedCluster]
    ) -> AnalysisResult:
        """Assemble the trip summary; dates come from the GPS photos only"""
        now = self.clock()
        start_date = gps_points[0].timestamp or now
        end_date = gps_points[-1].timestamp or now

        return AnalysisResult(
            title=self.build_title(clusters, start_date),
            start_date=start_date,
            end_date=end_date,
            places=tuple(clusters),
            photo_count=photo_count,
            total_distance_km=total_distance_km([cluster.centroid for cluster in clusters]),
            theme=self.determine_theme(clusters),
            layout_type=self.determine_layout(photo_count, len(clusters)),
            day_count=self.count_trip_days(clusters),
        )

    def run(
        self, handles: Iterable, cancel_event: threading.Event | None = None
    ) -> Iterator[ProgressEvent | PipelineOutcome]:
        """
        Run the analysis as a stream of progress events

        Yields:
            ProgressEvent for every stage (and every geocoded cluster) with
            non-decreasing progress, then exactly one PipelineOutcome holding
            either the AnalysisResult or the AnalysisError that ended the run.
        """
        handles = list(handles)
        logger.info(f"Starting trip analysis for {len(handles)} photos")

        try:
            self._check_cancelled(cancel_event, Stage.EXTRACT_METADATA)
            yield self._event(Stage.EXTRACT_METADATA)
            points = self.extract_metadata(handles)

            self._check_cancelled(cancel_event, Stage.FILTER_GPS)
            yield self._event(Stage.FILTER_GPS)
            gps_points = self.filter_gps(points)

            self._check_cancelled(cancel_event, Stage.SORT)
            yield self._event(Stage.SORT)
            gps_points = self.sort_points(gps_points)

            self._check_cancelled(cancel_event, Stage.CLUSTER)
            yield self._event(Stage.CLUSTER)
            raw_clusters = self.engine.cluster(gps_points)

            self._check_cancelled(cancel_event, Stage.GEOCODE)
            yield self._event(Stage.GEOCODE)
            geocoded = []
            base_progress = STAGE_PROGRESS[Stage.GEOCODE]
            for index, cluster in enumerate(raw_clusters):
                self._check_cancelled(cancel_event, Stage.GEOCODE)
                geocoded.append(self.geocode_cluster(cluster))
                progress = base_progress + GEOCODE_PROGRESS_SPAN * (index + 1) / len(raw_clusters)
                yield self._event(Stage.GEOCODE, progress)

            self._check_cancelled(cancel_event, Stage.CLASSIFY)
            yield self._event(Stage.CLASSIFY)
            classified = [self.classify_cluster(cluster) for cluster in geocoded]

            self._check_cancelled(cancel_event, Stage.BUILD_RESULT)
            yield self._event(Stage.BUILD_RESULT)
            result = self.build_result(len(handles), gps_points, classified)

            self._check_cancelled(cancel_event, Stage.DONE)
        except AnalysisError as e:
            logger.error(f"Analysis stopped: {e}")
            yield PipelineOutcome(error=e)
            return

        logger.info(f"Analysis completed - title: {result.title}, places: {result.place_count}")
        yield self._event(Stage.DONE)
        yield PipelineOutcome(result=result)

    def analyze(
        self,
        handles: Iterable,
        cancel_event: threading.Event | None = None,
        on_progress: Callable[[ProgressEvent], None] | None = None,
    ) -> AnalysisResult:
        """
        Run the analysis to completion

        Raises:
            NoLocationDataError: No photo carries coordinates
            AnalysisCancelledError: Cancellation was requested mid-run
        """
        outcome = None
        for item in self.run(handles, cancel_event):
            if isinstance(item, ProgressEvent):
                if on_progress:
                    on_progress(item)
            else:
                outcome = item

        if outcome.error is not None:
            raise outcome.error
        return outcome.result
