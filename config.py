from decouple import config
from pathlib import Path

# Directory paths
PHOTOS_DIR = Path(config('PHOTOS_DIR', default='takeout/photos'))
OUTPUT_DIR = Path(config('OUTPUT_DIR', default='results'))
CACHE_DIR = Path(config('CACHE_DIR', default='data'))

# File names
GEOCODING_CACHE_FILE = 'geocoding_cache.json'
ANALYSIS_RESULT_FILE = 'trip_analysis.json'
TRIP_SUMMARY_FILE = 'trip_summary.md'

# Clustering constants
CLUSTER_DISTANCE_THRESHOLD_METERS = config('CLUSTER_DISTANCE_THRESHOLD_METERS', default=100.0, cast=float)
CLUSTER_TIME_THRESHOLD_SECONDS = config('CLUSTER_TIME_THRESHOLD_SECONDS', default=1800.0, cast=float)
SINGLETON_FILTER_MIN_CLUSTERS = 3           # Only drop single-photo clusters above this many clusters
MIN_CLUSTER_PHOTOS = 2                      # Clusters below this size are dropped by the filter

# Geocoding
GEOCODER_USER_AGENT = config('GEOCODER_USER_AGENT', default='trip-trace/1.0')
GEOCODER_TIMEOUT_SECONDS = config('GEOCODER_TIMEOUT_SECONDS', default=10, cast=int)
GEOCODER_MIN_INTERVAL_SECONDS = config('GEOCODER_MIN_INTERVAL_SECONDS', default=1.0, cast=float)
GEOCODING_CACHE_EXPIRATION_DAYS = config('GEOCODING_CACHE_EXPIRATION_DAYS', default=30, cast=int)
GEOCODING_CACHE_PRECISION = 5               # Decimal places in cache keys (~1 m)

# Localization
LANGUAGE = config('LANGUAGE', default='en')
SUPPORTED_LANGUAGES = ('en', 'ko')
LOCAL_TIMEZONE = config('LOCAL_TIMEZONE', default='')

# Validation constants
MIN_VALID_LATITUDE = -90.0
MAX_VALID_LATITUDE = 90.0
MIN_VALID_LONGITUDE = -180.0
MAX_VALID_LONGITUDE = 180.0

# Result assembly
THEME_DOMINANCE_RATIO = 0.4                 # Share of places an activity needs to set the trip theme
MAGAZINE_LAYOUT_PHOTO_LIMIT = 5             # Fewer photos than this get the magazine layout
GRID_LAYOUT_PLACE_LIMIT = 5                 # More places than this get the grid layout

# Pipeline stage progress, in execution order
PIPELINE_STAGES = [
    {'name': 'extract-metadata', 'progress': 0.1},
    {'name': 'filter-gps', 'progress': 0.2},
    {'name': 'sort', 'progress': 0.3},
    {'name': 'cluster', 'progress': 0.4},
    {'name': 'geocode', 'progress': 0.6},
    {'name': 'classify', 'progress': 0.85},
    {'name': 'build-result', 'progress': 0.95},
    {'name': 'done', 'progress': 1.0},
]
GEOCODE_PROGRESS_SPAN = 0.2                 # Geocoding advances from 0.6 to 0.8 one cluster at a time
