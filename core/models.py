from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any


def utc_now() -> datetime:
    """Current time as an aware UTC datetime, the default clock for undated photos"""
    return datetime.now(UTC)


class ActivityType(str, Enum):
    """Closed set of activity categories a place visit can be labeled with"""

    CAFE = 'cafe'
    RESTAURANT = 'restaurant'
    BEACH = 'beach'
    MOUNTAIN = 'mountain'
    TOURIST = 'tourist'
    SHOPPING = 'shopping'
    CULTURE = 'culture'
    AIRPORT = 'airport'
    OTHER = 'other'

    @property
    def emoji(self) -> str:
        return ACTIVITY_EMOJI[self]


ACTIVITY_EMOJI = {
    ActivityType.CAFE: '☕',
    ActivityType.RESTAURANT: '🍽️',
    ActivityType.BEACH: '🏖️',
    ActivityType.MOUNTAIN: '⛰️',
    ActivityType.TOURIST: '🏛️',
    ActivityType.SHOPPING: '🛍️',
    ActivityType.CULTURE: '🎭',
    ActivityType.AIRPORT: '✈️',
    ActivityType.OTHER: '📍',
}


class Stage(str, Enum):
    """Pipeline stages in execution order"""

    EXTRACT_METADATA = 'extract-metadata'
    FILTER_GPS = 'filter-gps'
    SORT = 'sort'
    CLUSTER = 'cluster'
    GEOCODE = 'geocode'
    CLASSIFY = 'classify'
    BUILD_RESULT = 'build-result'
    DONE = 'done'


@dataclass(frozen=True)
class PhotoPoint:
    """One photo observation: opaque handle, capture time and optional coordinates"""

    handle: Any
    timestamp: datetime | None = None
    latitude: float | None = None
    longitude: float | None = None

    @property
    def has_gps(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def coordinates(self) -> tuple[float, float] | None:
        if not self.has_gps:
            return None
        return (self.latitude, self.longitude)


@dataclass(frozen=True)
class RawCluster:
    """A contiguous run of photos judged to be one physical visit"""

    latitude: float
    longitude: float
    start_time: datetime
    end_time: datetime
    photos: tuple[PhotoPoint, ...]

    @property
    def photo_count(self) -> int:
        return len(self.photos)

    @property
    def centroid(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(frozen=True)
class GeocodedCluster(RawCluster):
    """Cluster enriched with a reverse geocoding answer or its placeholders"""

    name: str = ''
    address: str = ''
    place_type: str | None = None
    locality: str | None = None
    sub_locality: str | None = None
    thoroughfare: str | None = None
    geocoded: bool = False


@dataclass(frozen=True)
class ClassifiedCluster(GeocodedCluster):
    """Fully analyzed place visit"""

    activity: ActivityType = ActivityType.OTHER
    activity_label: str = ''


@dataclass(frozen=True)
class GeocodeResult:
    """Best-effort description of a coordinate returned by a reverse geocoder"""

    name: str
    full_address: str
    place_type: str | None = None
    locality: str | None = None
    sub_locality: str | None = None
    thoroughfare: str | None = None


@dataclass(frozen=True)
class AnalysisResult:
    """Trip summary built once at the end of the pipeline"""

    title: str
    start_date: datetime
    end_date: datetime
    places: tuple[ClassifiedCluster, ...] = ()
    photo_count: int = 0
    total_distance_km: float = 0.0
    theme: str | None = None
    layout_type: str = 'timeline'
    day_count: int = 1

    @property
    def place_count(self) -> int:
        return len(self.places)


@dataclass(frozen=True)
class ProgressEvent:
    """Stage-level progress update emitted by the pipeline"""

    stage: Stage
    progress: float
    description: str


@dataclass(frozen=True)
class PipelineOutcome:
    """Terminal item of a pipeline run: a result or the error that ended it"""

    result: AnalysisResult | None = None
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None and self.error is None
