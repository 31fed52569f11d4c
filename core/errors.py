class TripTraceError(Exception):
    """Base exception for trip analysis errors"""


class AnalysisError(TripTraceError):
    """Terminal pipeline outcome that produces no result"""


class NoLocationDataError(AnalysisError):
    """None of the input photos carries GPS coordinates"""

    def __init__(self, photo_count: int = 0):
        self.photo_count = photo_count
        super().__init__(f"No location data in {photo_count} selected photos")


class AnalysisCancelledError(AnalysisError):
    """Caller requested cancellation before the pipeline finished"""

    def __init__(self, stage: str = ''):
        self.stage = stage
        message = f"Analysis cancelled during '{stage}'" if stage else "Analysis cancelled"
        super().__init__(message)


class GeocodeError(TripTraceError):
    """Reverse geocoding failed for a single coordinate"""


class GeocodeNoResultError(GeocodeError):
    """Geocoder answered but had no place for the coordinate"""


class GeocodeTransientError(GeocodeError):
    """Geocoder timed out or was unavailable"""


class ClusteringError(TripTraceError):
    """Invalid input reached the clustering engine"""
