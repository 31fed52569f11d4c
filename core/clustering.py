import logging
from collections.abc import Iterable
from config import (
    CLUSTER_DISTANCE_THRESHOLD_METERS,
    CLUSTER_TIME_THRESHOLD_SECONDS,
    MIN_CLUSTER_PHOTOS,
    SINGLETON_FILTER_MIN_CLUSTERS,
)
from core.errors import ClusteringError
from core.models import PhotoPoint, RawCluster, utc_now
from datetime import datetime
from utils.geo import distance_meters, incremental_mean

logger = logging.getLogger(__name__)


class _ClusterBuilder:
    """Mutable cluster state while points are still being absorbed"""

    def __init__(self, point: PhotoPoint, start_time: datetime):
        self.latitude = point.latitude
        self.longitude = point.longitude
        self.start_time = start_time
        self.end_time = start_time
        self.photos = [point]

    @property
    def centroid(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)

    def add(self, point: PhotoPoint) -> None:
        previous_count = len(self.photos)
        self.photos.append(point)

        if point.timestamp is not None and point.timestamp > self.end_time:
            self.end_time = point.timestamp

        self.latitude, self.longitude = incremental_mean(self.centroid, previous_count, point.coordinates)

    def freeze(self) -> RawCluster:
        return RawCluster(
            latitude=self.latitude,
            longitude=self.longitude,
            start_time=self.start_time,
            end_time=self.end_time,
            photos=tuple(self.photos),
        )


class ClusteringEngine:
    """Online spatiotemporal clustering of time-ordered GPS photos into place visits"""

    def __init__(
        self,
        distance_threshold: float = CLUSTER_DISTANCE_THRESHOLD_METERS,
        time_threshold: float = CLUSTER_TIME_THRESHOLD_SECONDS,
        clock=None,
    ):
        self.distance_threshold = distance_threshold
        self.time_threshold = time_threshold
        self.clock = clock or utc_now

    def belongs_to(self, cluster: _ClusterBuilder, point: PhotoPoint, timestamp: datetime) -> bool:
        """Both thresholds are strict: exactly on the boundary starts a new visit"""
        distance = distance_meters(cluster.centroid, point.coordinates)
        elapsed = (timestamp - cluster.end_time).total_seconds()
        return distance < self.distance_threshold and elapsed < self.time_threshold

    def cluster(self, points: Iterable[PhotoPoint]) -> list[RawCluster]:
        """
        Partition time-ordered GPS points into place-visit clusters

        Args:
            points: Photos with coordinates, already sorted by capture time

        Returns:
            list[RawCluster]: Clusters in temporal order, after the single-photo filter

        Raises:
            ClusteringError: If a point without coordinates is passed in
        """
        clusters: list[RawCluster] = []
        current: _ClusterBuilder | None = None
        point_count = 0

        for point in points:
            if not point.has_gps:
                raise ClusteringError(f"Photo {point.handle!r} has no coordinates")

            point_count += 1
            timestamp = point.timestamp or self.clock()

            if current is None:
                current = _ClusterBuilder(point, timestamp)
            elif self.belongs_to(current, point, timestamp):
                current.add(point)
            else:
                clusters.append(current.freeze())
                current = _ClusterBuilder(point, timestamp)

        if current is not None:
            clusters.append(current.freeze())

        if not clusters:
            logger.warning("No photos provided for clustering")
            return []

        clusters = self.filter_single_photo_clusters(clusters)

        logger.info(f"Clustering completed: {point_count} photos in {len(clusters)} clusters")
        for i, cluster in enumerate(clusters):
            logger.debug(
                f"  [{i}]: {cluster.photo_count} photos at ({cluster.latitude:.4f}, {cluster.longitude:.4f}) "
                f"from {cluster.start_time.isoformat()}"
            )

        return clusters

    def filter_single_photo_clusters(self, clusters: list[RawCluster]) -> list[RawCluster]:
        """Drop isolated single photos, but only once there are enough clusters to spare them"""
        if len(clusters) <= SINGLETON_FILTER_MIN_CLUSTERS:
            return clusters

        kept = [cluster for cluster in clusters if cluster.photo_count >= MIN_CLUSTER_PHOTOS]
        if len(kept) < len(clusters):
            logger.info(f"Dropped {len(clusters) - len(kept)} single-photo clusters")

        return kept
