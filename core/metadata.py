import json
import logging
from collections.abc import Callable
from config import MAX_VALID_LATITUDE, MAX_VALID_LONGITUDE, MIN_VALID_LATITUDE, MIN_VALID_LONGITUDE
from core.models import PhotoPoint
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Resolves an opaque photo handle to its capture time and coordinates
MetadataExtractor = Callable[[Any], PhotoPoint]

PHOTO_SIDECAR_KEYS = ('photoTakenTime', 'creationTime', 'geoDataExif', 'geoData')


def validate_coordinates(lat: float, lon: float) -> bool:
    """Validate coordinate ranges"""
    return MIN_VALID_LATITUDE <= lat <= MAX_VALID_LATITUDE and MIN_VALID_LONGITUDE <= lon <= MAX_VALID_LONGITUDE


def is_photo_sidecar(path: Path) -> bool:
    """Per-photo sidecars carry a capture time or location; album metadata.json files do not"""
    try:
        with open(path) as f:
            metadata = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Skipping unreadable metadata file {path.name}: {e}")
        return False

    return isinstance(metadata, dict) and any(key in metadata for key in PHOTO_SIDECAR_KEYS)


def discover_sidecars(photos_dir: Path) -> list[Path]:
    """List photo metadata sidecar files in a directory, in name order"""
    if not photos_dir.exists():
        logger.info(f"Photos directory not found: {photos_dir}")
        return []

    json_files = sorted(photos_dir.glob("*.json"))
    sidecars = [path for path in json_files if is_photo_sidecar(path)]
    if len(sidecars) < len(json_files):
        logger.info(f"Skipped {len(json_files) - len(sidecars)} non-photo JSON files")
    logger.info(f"Found {len(sidecars)} metadata files in {photos_dir}")
    return sidecars


class SidecarMetadataExtractor:
    """Read capture time and location from Google Takeout photo JSON sidecars"""

    def parse_timestamp_from_epoch(self, timestamp_str: str | int) -> datetime | None:
        """Convert epoch seconds to an aware UTC datetime"""
        try:
            return datetime.fromtimestamp(int(timestamp_str), tz=UTC)
        except (TypeError, ValueError, OverflowError, OSError) as e:
            logger.warning(f"Failed to parse epoch timestamp '{timestamp_str}': {e}")
            return None

    def extract_timestamp(self, metadata: dict) -> datetime | None:
        """Photo taken time first, creation time as a fallback"""
        for key in ('photoTakenTime', 'creationTime'):
            epoch = (metadata.get(key) or {}).get('timestamp')
            if epoch:
                timestamp = self.parse_timestamp_from_epoch(epoch)
                if timestamp:
                    return timestamp
        return None

    def extract_coordinates(self, metadata: dict, source: str = '') -> tuple[float, float] | None:
        for key in ('geoDataExif', 'geoData'):
            geo_data = metadata.get(key) or {}
            lat = geo_data.get('latitude')
            lon = geo_data.get('longitude')

            if lat is None or lon is None:
                continue
            # Takeout writes 0.0, 0.0 when a photo has no location
            if lat == 0.0 and lon == 0.0:
                continue
            if not validate_coordinates(lat, lon):
                logger.warning(f"Invalid coordinates in {source}: lat={lat}, lon={lon}")
                continue

            return (float(lat), float(lon))

        return None

    def __call__(self, handle: Path) -> PhotoPoint:
        path = Path(handle)

        try:
            with open(path) as f:
                metadata = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error processing {path}: {e}")
            return PhotoPoint(handle=handle)

        timestamp = self.extract_timestamp(metadata)
        if timestamp is None:
            logger.warning(f"No capture time in {path.name}")

        coordinates = self.extract_coordinates(metadata, path.name)
        latitude, longitude = coordinates if coordinates else (None, None)

        return PhotoPoint(handle=handle, timestamp=timestamp, latitude=latitude, longitude=longitude)
