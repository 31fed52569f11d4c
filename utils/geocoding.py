import json
import logging
import time
from config import (
    CACHE_DIR,
    GEOCODER_MIN_INTERVAL_SECONDS,
    GEOCODER_TIMEOUT_SECONDS,
    GEOCODER_USER_AGENT,
    GEOCODING_CACHE_EXPIRATION_DAYS,
    GEOCODING_CACHE_FILE,
    GEOCODING_CACHE_PRECISION,
)
from core.errors import GeocodeNoResultError, GeocodeTransientError
from core.locale import resolve_language, translate
from core.models import GeocodeResult
from dataclasses import asdict
from datetime import UTC, datetime
from dateutil.parser import parse as parse_date
from geopy.exc import GeocoderServiceError, GeocoderTimedOut, GeocoderUnavailable
from geopy.geocoders import Nominatim
from pathlib import Path

logger = logging.getLogger(__name__)

# Nominatim tags that name a kind of place the activity keywords would miss
PLACE_TYPE_ALIASES = {
    'aerodrome': 'airport',
    'terminal': 'airport',
    'peak': 'mountain',
    'volcano': 'mountain',
    'theatre': 'theater',
    'arts_centre': 'culture',
    'fast_food': 'food',
    'bar': 'food',
    'pub': 'food',
    'attraction': 'tourist landmark',
    'viewpoint': 'tourist landmark',
    'monument': 'landmark',
    'memorial': 'landmark',
    'artwork': 'gallery',
    'garden': 'park',
    'department_store': 'mall',
    'supermarket': 'store',
    'place_of_worship': 'temple',
}

LOCALITY_KEYS = ('city', 'town', 'village', 'municipality')
SUB_LOCALITY_KEYS = ('suburb', 'city_district', 'neighbourhood', 'quarter', 'borough')
THOROUGHFARE_KEYS = ('road', 'pedestrian', 'footway', 'path')
ADMINISTRATIVE_AREA_KEYS = ('state', 'province', 'region')


def build_geocode_result(
    poi_name: str | None = None,
    administrative_area: str | None = None,
    locality: str | None = None,
    sub_locality: str | None = None,
    thoroughfare: str | None = None,
    sub_thoroughfare: str | None = None,
    place_type: str | None = None,
    placeholder: str = 'Unknown place',
) -> GeocodeResult:
    """
    Assemble a geocode result from address components

    Name prefers the point of interest, then sub-locality, then locality, then the
    placeholder. The address runs from the administrative area down to the house
    number, skipping missing parts.
    """
    name = poi_name or sub_locality or locality or placeholder
    components = [administrative_area, locality, sub_locality, thoroughfare, sub_thoroughfare]
    full_address = ' '.join(part for part in components if part)

    return GeocodeResult(
        name=name,
        full_address=full_address,
        place_type=place_type,
        locality=locality,
        sub_locality=sub_locality,
        thoroughfare=thoroughfare,
    )


def first_present(address: dict, keys: tuple[str, ...]) -> str | None:
    for key in keys:
        if address.get(key):
            return address[key]
    return None


def determine_place_type(raw: dict) -> str | None:
    """Derive a free-text place-type hint from Nominatim category tags and the place name"""
    category = raw.get('category') or raw.get('class') or ''
    place_type = raw.get('type') or ''

    hints = [PLACE_TYPE_ALIASES.get(place_type, place_type), category]
    hints = [part.replace('_', ' ') for part in hints if part and part != 'yes']

    name = (raw.get('name') or '').lower()
    if any(word in name for word in ('coffee', 'cafe', '카페', '스타벅스')):
        hints.append('cafe')
    elif any(word in name for word in ('restaurant', '식당', '맛집', '레스토랑')):
        hints.append('restaurant')
    elif any(word in name for word in ('beach', '해변', '해수욕장')):
        hints.append('beach')

    return ' '.join(hints) or None


class GeocodingCache:
    """File-based cache for reverse geocoding results with rate limiting and expiration"""

    def __init__(
        self,
        cache_file: Path = CACHE_DIR / GEOCODING_CACHE_FILE,
        expiration_days: int = GEOCODING_CACHE_EXPIRATION_DAYS,
        min_api_interval: float = GEOCODER_MIN_INTERVAL_SECONDS,
    ):
        self.cache_file = cache_file
        self.expiration_days = expiration_days
        self.last_api_call = 0
        self.min_api_interval = min_api_interval
        self.cache_data = self._load_cache()
        self.session_hits = 0
        self.session_misses = 0

    def _empty_cache(self) -> dict:
        now = datetime.now(UTC).isoformat()
        return {
            'metadata': {
                'version': '2.0',
                'created': now,
                'last_updated': now,
                'total_entries': 0,
                'cache_hits': 0,
                'cache_misses': 0,
                'expiration_days': self.expiration_days,
            },
            'entries': {},
        }

    def _load_cache(self) -> dict:
        """Load cache from file, starting fresh when it is missing or unreadable"""
        if self.cache_file.exists():
            try:
                with open(self.cache_file) as f:
                    data = json.load(f)
                if 'metadata' in data and 'entries' in data:
                    return data
                logger.warning("Geocoding cache has an unknown layout, starting fresh")
            except (json.JSONDecodeError, OSError):
                logger.warning("Could not load geocoding cache, starting fresh")

        return self._empty_cache()

    def _generate_cache_key(self, latitude: float, longitude: float, language: str) -> str:
        precision = GEOCODING_CACHE_PRECISION
        return f"reverse_{language}_{latitude:.{precision}f}_{longitude:.{precision}f}"

    def _is_expired(self, entry: dict) -> bool:
        """Check if cache entry has expired"""
        try:
            entry_time = parse_date(entry['timestamp'])
            age_days = (datetime.now(UTC) - entry_time).days
            return age_days > self.expiration_days
        except (KeyError, TypeError, ValueError, OverflowError):
            return True

    def get(self, coordinates: tuple[float, float], language: str = 'en') -> GeocodeResult | None:
        """Get cached reverse geocoding result"""
        key = self._generate_cache_key(coordinates[0], coordinates[1], language)
        entry = self.cache_data['entries'].get(key)

        if entry and not self._is_expired(entry):
            self.session_hits += 1
            self.cache_data['metadata']['cache_hits'] += 1
            return GeocodeResult(**entry['response'])

        self.session_misses += 1
        self.cache_data['metadata']['cache_misses'] += 1

        if entry:
            del self.cache_data['entries'][key]
            self.cache_data['metadata']['total_entries'] -= 1

        return None

    def set(self, coordinates: tuple[float, float], result: GeocodeResult, language: str = 'en'):
        """Store a reverse geocoding result"""
        key = self._generate_cache_key(coordinates[0], coordinates[1], language)

        entry = {
            'timestamp': datetime.now(UTC).isoformat(),
            'query': {'latitude': coordinates[0], 'longitude': coordinates[1], 'language': language},
            'response': asdict(result),
        }

        if key not in self.cache_data['entries']:
            self.cache_data['metadata']['total_entries'] += 1

        self.cache_data['entries'][key] = entry
        self.cache_data['metadata']['last_updated'] = datetime.now(UTC).isoformat()
        self._save_cache()

    def enforce_rate_limit(self):
        """Space out API calls to honor the Nominatim usage policy"""
        current_time = time.time()
        time_since_last = current_time - self.last_api_call

        if time_since_last < self.min_api_interval:
            sleep_time = self.min_api_interval - time_since_last
            logger.debug(f"Rate limiting: sleeping {sleep_time:.2f} seconds")
            time.sleep(sleep_time)

        self.last_api_call = time.time()

    def clean_expired(self) -> int:
        """Remove expired entries from cache"""
        expired_keys = [key for key, entry in self.cache_data['entries'].items() if self._is_expired(entry)]

        for key in expired_keys:
            del self.cache_data['entries'][key]

        if expired_keys:
            self.cache_data['metadata']['total_entries'] -= len(expired_keys)
            self.cache_data['metadata']['last_updated'] = datetime.now(UTC).isoformat()
            self._save_cache()
            logger.info(f"Cleaned {len(expired_keys)} expired cache entries")

        return len(expired_keys)

    def clear(self):
        """Clear all cache entries"""
        entry_count = len(self.cache_data['entries'])
        self.cache_data['entries'] = {}
        self.cache_data['metadata']['total_entries'] = 0
        self.cache_data['metadata']['last_updated'] = datetime.now(UTC).isoformat()
        self._save_cache()
        logger.info(f"Cleared {entry_count} cache entries")

    def get_stats(self) -> dict:
        """Get cache statistics"""
        total_hits = self.cache_data['metadata']['cache_hits']
        total_misses = self.cache_data['metadata']['cache_misses']
        total_requests = total_hits + total_misses

        hit_ratio = (total_hits / total_requests * 100) if total_requests > 0 else 0

        return {
            'total_entries': self.cache_data['metadata']['total_entries'],
            'cache_hits': total_hits,
            'cache_misses': total_misses,
            'hit_ratio_percent': round(hit_ratio, 1),
            'session_hits': self.session_hits,
            'session_misses': self.session_misses,
            'expiration_days': self.expiration_days,
            'created': self.cache_data['metadata']['created'],
            'last_updated': self.cache_data['metadata']['last_updated'],
        }

    def _save_cache(self):
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.cache_file, 'w') as f:
            json.dump(self.cache_data, f, indent=2, ensure_ascii=False)


class ReverseGeocoder:
    """Resolve a coordinate to a place name, address and place-type hint"""

    def reverse_geocode(self, latitude: float, longitude: float) -> GeocodeResult:
        """
        Raises:
            GeocodeNoResultError: No place is known at the coordinate
            GeocodeTransientError: The service timed out or was unavailable
        """
        raise NotImplementedError


class NominatimReverseGeocoder(ReverseGeocoder):
    """Reverse geocoder backed by OpenStreetMap Nominatim through geopy"""

    def __init__(
        self,
        language: str | None = None,
        cache: GeocodingCache | None = None,
        geocoder: Nominatim | None = None,
        timeout: int = GEOCODER_TIMEOUT_SECONDS,
    ):
        self.language = resolve_language(language)
        self.cache = cache if cache is not None else GeocodingCache()
        self.geocoder = geocoder or Nominatim(user_agent=GEOCODER_USER_AGENT, timeout=timeout)

    def parse_location(self, raw: dict) -> GeocodeResult:
        """Map a Nominatim response onto name/address components"""
        address = raw.get('address', {})

        return build_geocode_result(
            poi_name=raw.get('name') or None,
            administrative_area=first_present(address, ADMINISTRATIVE_AREA_KEYS),
            locality=first_present(address, LOCALITY_KEYS),
            sub_locality=first_present(address, SUB_LOCALITY_KEYS),
            thoroughfare=first_present(address, THOROUGHFARE_KEYS),
            sub_thoroughfare=address.get('house_number'),
            place_type=determine_place_type(raw),
            placeholder=translate('unknown_place', self.language),
        )

    def reverse_geocode(self, latitude: float, longitude: float) -> GeocodeResult:
        coordinates = (latitude, longitude)
        logger.debug(f"Reverse geocoding ({latitude:.5f}, {longitude:.5f})")

        cached = self.cache.get(coordinates, self.language)
        if cached is not None:
            return cached

        self.cache.enforce_rate_limit()

        try:
            location = self.geocoder.reverse(coordinates, exactly_one=True, language=self.language)
        except (GeocoderTimedOut, GeocoderUnavailable) as e:
            raise GeocodeTransientError(f"Geocoder unavailable for {latitude}, {longitude}: {e}") from e
        except GeocoderServiceError as e:
            raise GeocodeTransientError(f"Geocoder error for {latitude}, {longitude}: {e}") from e

        if location is None or not location.raw:
            raise GeocodeNoResultError(f"No place found at {latitude}, {longitude}")

        result = self.parse_location(location.raw)
        self.cache.set(coordinates, result, self.language)
        return result
