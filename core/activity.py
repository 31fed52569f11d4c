import logging
from config import LOCAL_TIMEZONE
from core.locale import resolve_language, translate
from core.models import ActivityType, utc_now
from datetime import datetime, tzinfo
from dateutil import tz

logger = logging.getLogger(__name__)

# Checked in order; the first category with a matching keyword wins
PLACE_TYPE_KEYWORDS = [
    (ActivityType.CAFE, ('cafe', 'coffee')),
    (ActivityType.RESTAURANT, ('restaurant', 'food')),
    (ActivityType.BEACH, ('beach', 'sea')),
    (ActivityType.MOUNTAIN, ('mountain', 'trail', 'hiking')),
    (ActivityType.AIRPORT, ('airport',)),
    (ActivityType.CULTURE, ('museum', 'gallery', 'theater', 'culture')),
    (ActivityType.SHOPPING, ('mall', 'shop', 'store', 'shopping')),
    (ActivityType.TOURIST, ('tourist', 'park', 'temple', 'landmark')),
]

FIXED_LABEL_KEYS = {
    ActivityType.BEACH: 'label.beach',
    ActivityType.MOUNTAIN: 'label.mountain',
    ActivityType.TOURIST: 'label.tourist',
    ActivityType.SHOPPING: 'label.shopping',
    ActivityType.CULTURE: 'label.culture',
    ActivityType.AIRPORT: 'label.airport',
    ActivityType.OTHER: 'label.other',
}


def local_timezone(name: str = LOCAL_TIMEZONE) -> tzinfo:
    """Resolve a timezone name, defaulting to the system zone"""
    if name:
        zone = tz.gettz(name)
        if zone is not None:
            return zone
        logger.warning(f"Unknown timezone '{name}', using system local time")
    return tz.tzlocal()


def activity_for_hour(hour: int) -> ActivityType:
    """Time-of-day fallback when a place type gives no hint"""
    if 6 <= hour <= 11:
        return ActivityType.CAFE
    if 12 <= hour <= 14:
        return ActivityType.RESTAURANT
    if 15 <= hour <= 17:
        return ActivityType.TOURIST
    if 18 <= hour <= 21:
        return ActivityType.RESTAURANT
    return ActivityType.OTHER


class ActivityClassifier:
    """Infer what kind of activity a place visit was and label it for display"""

    def __init__(self, language: str | None = None, timezone: tzinfo | None = None, clock=None):
        self.language = resolve_language(language)
        self.timezone = timezone or local_timezone()
        self.clock = clock or utc_now

    def localize(self, time: datetime | None) -> datetime:
        """Wall-clock time of a visit; naive datetimes are taken as already local"""
        if time is None:
            time = self.clock()
        if time.tzinfo is not None:
            time = time.astimezone(self.timezone)
        return time

    def local_hour(self, time: datetime | None) -> int:
        return self.localize(time).hour

    def match_place_type(self, place_type: str | None) -> ActivityType | None:
        if not place_type:
            return None

        normalized = place_type.lower()
        for activity, keywords in PLACE_TYPE_KEYWORDS:
            if any(keyword in normalized for keyword in keywords):
                return activity

        return None

    def infer(self, place_type: str | None, time: datetime | None) -> ActivityType:
        """
        Classify a visit from its place-type hint, falling back to time of day

        Args:
            place_type: Free-text hint from reverse geocoding, may be None
            time: Visit start time; the current time is used when None

        Returns:
            ActivityType: The matched or time-inferred category
        """
        activity = self.match_place_type(place_type)
        if activity is not None:
            logger.debug(f"Place type '{place_type}' matched {activity.value}")
            return activity

        hour = self.local_hour(time)
        activity = activity_for_hour(hour)
        logger.debug(f"No place type match for '{place_type}', inferred {activity.value} from hour {hour}")
        return activity

    def label(self, activity: ActivityType, hour: int) -> str:
        """Short display label for an activity at a given hour"""
        if activity is ActivityType.CAFE:
            if hour < 11:
                key = 'label.cafe.morning'
            elif hour < 15:
                key = 'label.cafe.midday'
            else:
                key = 'label.cafe.afternoon'
        elif activity is ActivityType.RESTAURANT:
            if hour < 11:
                key = 'label.restaurant.breakfast'
            elif hour < 15:
                key = 'label.restaurant.lunch'
            elif hour < 18:
                key = 'label.restaurant.late_lunch'
            else:
                key = 'label.restaurant.dinner'
        else:
            key = FIXED_LABEL_KEYS[activity]

        return translate(key, self.language)

    def label_for_time(self, activity: ActivityType, time: datetime | None) -> str:
        return self.label(activity, self.local_hour(time))
