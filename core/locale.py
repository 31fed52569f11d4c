"""Display strings for the supported languages"""

import logging
from config import LANGUAGE, SUPPORTED_LANGUAGES
from core.models import ActivityType

logger = logging.getLogger(__name__)

STRINGS = {
    'en': {
        'unknown_place': 'Unknown place',
        'trip_title': '{name} trip',
        'date_trip_title': '{month_name} {day} trip',
        'activity.cafe': 'Cafe',
        'activity.restaurant': 'Dining',
        'activity.beach': 'Beach',
        'activity.mountain': 'Hiking',
        'activity.tourist': 'Sightseeing',
        'activity.shopping': 'Shopping',
        'activity.culture': 'Culture',
        'activity.airport': 'Airport',
        'activity.other': 'Other',
        'label.cafe.morning': 'Morning coffee',
        'label.cafe.midday': 'Brunch/cafe',
        'label.cafe.afternoon': 'Afternoon tea',
        'label.restaurant.breakfast': 'Breakfast',
        'label.restaurant.lunch': 'Lunch',
        'label.restaurant.late_lunch': 'Late lunch',
        'label.restaurant.dinner': 'Dinner',
        'label.beach': 'Beach walk',
        'label.mountain': 'Hiking',
        'label.tourist': 'Sightseeing',
        'label.shopping': 'Shopping',
        'label.culture': 'Cultural activity',
        'label.airport': 'Airport',
        'label.other': 'Visit',
        'theme.cafe': 'Cafe tour',
        'theme.restaurant': 'Food trip',
        'theme.beach': 'Seaside trip',
        'theme.mountain': 'Healing trip',
        'theme.culture': 'Culture trip',
        'theme.shopping': 'Shopping trip',
        'stage.extract-metadata': 'Reading photo metadata...',
        'stage.filter-gps': 'Extracting location data...',
        'stage.sort': 'Ordering photos by capture time...',
        'stage.cluster': 'Analyzing route...',
        'stage.geocode': 'Resolving addresses...',
        'stage.classify': 'Analyzing activity types...',
        'stage.build-result': 'Summarizing results...',
        'stage.done': 'Done!',
    },
    'ko': {
        'unknown_place': '알 수 없는 장소',
        'trip_title': '{name} 여행',
        'date_trip_title': '{month}월 {day}일 여행',
        'activity.cafe': '카페',
        'activity.restaurant': '식사',
        'activity.beach': '해변',
        'activity.mountain': '등산',
        'activity.tourist': '관광',
        'activity.shopping': '쇼핑',
        'activity.culture': '문화',
        'activity.airport': '공항',
        'activity.other': '기타',
        'label.cafe.morning': '모닝 커피',
        'label.cafe.midday': '브런치/카페',
        'label.cafe.afternoon': '오후 티타임',
        'label.restaurant.breakfast': '아침 식사',
        'label.restaurant.lunch': '점심 식사',
        'label.restaurant.late_lunch': '늦은 점심',
        'label.restaurant.dinner': '저녁 식사',
        'label.beach': '해변 산책',
        'label.mountain': '등산/하이킹',
        'label.tourist': '관광',
        'label.shopping': '쇼핑',
        'label.culture': '문화 활동',
        'label.airport': '공항',
        'label.other': '방문',
        'theme.cafe': '카페 투어',
        'theme.restaurant': '식도락 여행',
        'theme.beach': '바다 여행',
        'theme.mountain': '힐링 여행',
        'theme.culture': '문화 탐방',
        'theme.shopping': '쇼핑 여행',
        'stage.extract-metadata': '사진 메타데이터 읽는 중...',
        'stage.filter-gps': '위치 정보 추출 중...',
        'stage.sort': '촬영 시간순 정렬 중...',
        'stage.cluster': '동선 분석 중...',
        'stage.geocode': '주소 정보 변환 중...',
        'stage.classify': '활동 유형 분석 중...',
        'stage.build-result': '결과 정리 중...',
        'stage.done': '완료!',
    },
}


def resolve_language(language: str | None = None) -> str:
    """Return a supported language code, falling back to English"""
    language = (language or LANGUAGE or 'en').lower()
    if language not in SUPPORTED_LANGUAGES:
        logger.warning(f"Unsupported language '{language}', falling back to English")
        return 'en'
    return language


def translate(key: str, language: str | None = None, **kwargs) -> str:
    """Look up a display string and fill in its placeholders"""
    table = STRINGS[resolve_language(language)]
    template = table.get(key, STRINGS['en'][key])
    return template.format(**kwargs) if kwargs else template


def activity_display_name(activity: ActivityType, language: str | None = None) -> str:
    return translate(f"activity.{activity.value}", language)
