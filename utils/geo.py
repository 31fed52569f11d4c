from collections.abc import Sequence
from geopy.distance import great_circle

Coordinate = tuple[float, float]


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in meters between two (latitude, longitude) pairs"""
    if a == b:
        return 0.0
    return great_circle(a, b).meters


def incremental_mean(centroid: Coordinate, count: int, point: Coordinate) -> Coordinate:
    """Fold one more point into a running-mean centroid of `count` points"""
    new_count = count + 1
    return (
        (centroid[0] * count + point[0]) / new_count,
        (centroid[1] * count + point[1]) / new_count,
    )


def total_distance_km(centroids: Sequence[Coordinate]) -> float:
    """Sum of consecutive leg distances along an ordered route, in kilometers"""
    if len(centroids) < 2:
        return 0.0

    total = 0.0
    for start, end in zip(centroids, centroids[1:]):
        total += distance_meters(start, end)

    return total / 1000
