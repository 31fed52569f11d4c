"""Test data fixtures for trip-trace tests"""

import json
from core.models import GeocodeResult, PhotoPoint
from datetime import datetime, timedelta
from pathlib import Path

# Roughly 11.1 m per 0.0001 degree of latitude
METERS_PER_DEGREE_LATITUDE = 111_195.0

BASE_LATITUDE = 37.5665
BASE_LONGITUDE = 126.9780
BASE_TIME = datetime(2024, 3, 15, 9, 0, 0)


class TripFixtures:
    """Centralized test data fixtures"""

    @staticmethod
    def point(
        handle: str,
        meters_north: float = 0.0,
        minutes: float = 0.0,
        base_latitude: float = BASE_LATITUDE,
        base_longitude: float = BASE_LONGITUDE,
        base_time: datetime = BASE_TIME,
    ) -> PhotoPoint:
        """Photo a given distance north of the base location, a given time after the base time"""
        return PhotoPoint(
            handle=handle,
            timestamp=base_time + timedelta(minutes=minutes),
            latitude=base_latitude + meters_north / METERS_PER_DEGREE_LATITUDE,
            longitude=base_longitude,
        )

    @classmethod
    def visits(cls, *visits: tuple[float, float, int]) -> list[PhotoPoint]:
        """
        Build photos for a sequence of visits

        Each visit is (meters_north, start_minute, photo_count); photos within a
        visit are taken at the same spot one minute apart.
        """
        points = []
        for visit_index, (meters_north, start_minute, photo_count) in enumerate(visits):
            for i in range(photo_count):
                points.append(cls.point(f"v{visit_index}_p{i}", meters_north, start_minute + i))
        return points

    @staticmethod
    def geocode_result(name: str, place_type: str | None = None) -> GeocodeResult:
        return GeocodeResult(
            name=name,
            full_address=f"Seoul Jung-gu {name}",
            place_type=place_type,
            locality='Seoul',
            sub_locality='Jung-gu',
            thoroughfare='Sejong-daero',
        )

    @staticmethod
    def get_test_sidecar(
        timestamp: int | None = 1710493200, latitude: float | None = 37.5665, longitude: float | None = 126.978
    ) -> dict:
        """Google Takeout photo metadata sidecar"""
        sidecar = {
            'title': 'IMG_0001.jpg',
            'description': '',
            'imageViews': '3',
            'creationTime': {'timestamp': '1710500000', 'formatted': 'Mar 15, 2024, 10:53:20 AM UTC'},
        }
        if timestamp is not None:
            sidecar['photoTakenTime'] = {'timestamp': str(timestamp), 'formatted': 'Mar 15, 2024, 9:00:00 AM UTC'}
        if latitude is not None and longitude is not None:
            sidecar['geoDataExif'] = {'latitude': latitude, 'longitude': longitude, 'altitude': 38.0}
        return sidecar

    @classmethod
    def create_sidecar_files(cls, photos_dir: Path, sidecars: dict[str, dict]) -> list[Path]:
        """Write sidecars as `<name>.json` files and return their paths"""
        photos_dir.mkdir(parents=True, exist_ok=True)
        paths = []
        for name, sidecar in sidecars.items():
            path = photos_dir / f"{name}.json"
            with open(path, 'w') as f:
                json.dump(sidecar, f, indent=2)
            paths.append(path)
        return paths
