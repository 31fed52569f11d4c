import pytest
import threading
from core.activity import ActivityClassifier
from core.errors import AnalysisCancelledError, GeocodeNoResultError, GeocodeTransientError, NoLocationDataError
from core.metadata import SidecarMetadataExtractor
from core.models import ActivityType, GeocodeResult, PhotoPoint, PipelineOutcome, ProgressEvent, Stage
from core.pipeline import AnalysisPipeline
from datetime import UTC, datetime
from dateutil import tz
from fixtures import BASE_TIME, TripFixtures
from unittest.mock import Mock
from utils.geocoding import ReverseGeocoder

NOW = datetime(2024, 3, 20, 12, 0, 0)


def make_pipeline(geocoder=None, language='en', **kwargs):
    """Pipeline over in-memory PhotoPoints with a mocked geocoder"""
    if geocoder is None:
        geocoder = Mock(spec=ReverseGeocoder)
        geocoder.reverse_geocode.return_value = TripFixtures.geocode_result('Deoksugung', 'museum')

    return AnalysisPipeline(
        extractor=lambda point: point,
        geocoder=geocoder,
        classifier=ActivityClassifier(language=language, timezone=tz.UTC, clock=lambda: NOW),
        language=language,
        clock=lambda: NOW,
        **kwargs,
    )


def failing_geocoder(error=GeocodeNoResultError):
    geocoder = Mock(spec=ReverseGeocoder)
    geocoder.reverse_geocode.side_effect = error('nothing here')
    return geocoder


@pytest.fixture
def three_visits():
    """Three visits an hour and a kilometer apart: 3, 2 and 4 photos"""
    return TripFixtures.visits((0, 0, 3), (1000, 60, 2), (2000, 120, 4))


class TestAnalysis:
    """End-to-end runs with injected collaborators"""

    def test_geocode_failure_is_isolated(self, three_visits):
        geocoder = Mock(spec=ReverseGeocoder)
        geocoder.reverse_geocode.side_effect = [
            TripFixtures.geocode_result('Deoksugung', 'museum'),
            GeocodeTransientError('timed out'),
            TripFixtures.geocode_result('Blue Bottle', 'cafe amenity'),
        ]
        pipeline = make_pipeline(geocoder)

        result = pipeline.analyze(three_visits)

        assert result.place_count == 3
        first, second, third = result.places
        assert first.name == 'Deoksugung'
        assert first.geocoded
        assert second.name == 'Unknown place'
        assert second.address == ''
        assert not second.geocoded
        assert third.name == 'Blue Bottle'
        assert [p.activity for p in result.places] == [ActivityType.CULTURE, ActivityType.CAFE, ActivityType.CAFE]
        assert second.activity_label == 'Morning coffee'

    def test_result_summary(self, three_visits):
        result = make_pipeline().analyze(three_visits)

        assert result.title == 'Deoksugung trip'
        assert result.photo_count == 9
        assert result.start_date == three_visits[0].timestamp
        assert result.end_date == three_visits[-1].timestamp
        assert result.total_distance_km == pytest.approx(2.0, rel=0.02)
        assert result.layout_type == 'timeline'
        assert result.day_count == 1
        assert result.theme == 'Culture trip'

    def test_photo_count_includes_photos_without_gps(self, three_visits):
        no_gps = PhotoPoint(handle='screenshot', timestamp=BASE_TIME.replace(hour=7))

        result = make_pipeline().analyze([no_gps, *three_visits])

        assert result.photo_count == 10
        assert result.start_date == three_visits[0].timestamp
        assert sum(place.photo_count for place in result.places) == 9

    def test_unsorted_input_is_ordered_by_time(self, three_visits):
        result = make_pipeline().analyze(list(reversed(three_visits)))

        assert [place.photo_count for place in result.places] == [3, 2, 4]

    def test_no_gps_photos(self):
        engine = Mock()
        pipeline = make_pipeline(engine=engine)

        with pytest.raises(NoLocationDataError) as exc_info:
            pipeline.analyze([PhotoPoint(handle='a', timestamp=BASE_TIME)])

        assert exc_info.value.photo_count == 1
        engine.cluster.assert_not_called()

    def test_empty_input(self):
        with pytest.raises(NoLocationDataError):
            make_pipeline().analyze([])

    def test_rerun_is_independent(self, three_visits):
        pipeline = make_pipeline()

        first = list(pipeline.run(three_visits))
        second = list(pipeline.run(three_visits))

        assert first == second


class TestTitle:
    def test_named_after_first_geocoded_place(self, three_visits):
        geocoder = Mock(spec=ReverseGeocoder)
        geocoder.reverse_geocode.side_effect = [
            GeocodeNoResultError('ocean'),
            TripFixtures.geocode_result('Gyeongbokgung'),
            TripFixtures.geocode_result('Insadong'),
        ]

        assert make_pipeline(geocoder).analyze(three_visits).title == 'Gyeongbokgung trip'

    def test_date_title_when_nothing_resolved(self, three_visits):
        result = make_pipeline(failing_geocoder()).analyze(three_visits)

        assert result.title == 'March 15 trip'
        assert all(place.name == 'Unknown place' for place in result.places)

    def test_placeholder_name_never_becomes_title(self, three_visits):
        geocoder = Mock(spec=ReverseGeocoder)
        geocoder.reverse_geocode.side_effect = [
            GeocodeResult(name='Unknown place', full_address=''),
            TripFixtures.geocode_result('Insadong'),
            TripFixtures.geocode_result('Jongmyo'),
        ]

        result = make_pipeline(geocoder).analyze(three_visits)

        assert result.places[0].geocoded
        assert result.title == 'Insadong trip'

    def test_only_placeholder_names_fall_back_to_date(self, three_visits):
        geocoder = Mock(spec=ReverseGeocoder)
        geocoder.reverse_geocode.return_value = GeocodeResult(name='Unknown place', full_address='')

        assert make_pipeline(geocoder).analyze(three_visits).title == 'March 15 trip'

    def test_korean_titles(self, three_visits):
        assert make_pipeline(failing_geocoder(), language='ko').analyze(three_visits).title == '3월 15일 여행'

        korean = make_pipeline(language='ko').analyze(three_visits)
        assert korean.title == 'Deoksugung 여행'
        assert korean.places[0].name == 'Deoksugung'


class TestResultAssembly:
    """Theme, layout and day count"""

    def test_no_dominant_theme(self):
        geocoder = Mock(spec=ReverseGeocoder)
        geocoder.reverse_geocode.side_effect = [
            TripFixtures.geocode_result('A', 'cafe'),
            TripFixtures.geocode_result('B', 'beach'),
            TripFixtures.geocode_result('C', 'mall'),
        ]
        points = TripFixtures.visits((0, 0, 2), (1000, 60, 2), (2000, 120, 2))

        assert make_pipeline(geocoder).analyze(points).theme is None

    def test_other_activity_has_no_theme(self):
        late = datetime(2024, 3, 15, 23, 0, 0)
        points = [
            TripFixtures.point(f"p{i}", meters_north=meters, minutes=minutes, base_time=late)
            for i, (meters, minutes) in enumerate([(0, 0), (0, 1), (1000, 40), (1000, 41)])
        ]

        result = make_pipeline(failing_geocoder()).analyze(points)

        assert {place.activity for place in result.places} == {ActivityType.OTHER}
        assert result.theme is None

    def test_magazine_layout_for_few_photos(self):
        points = TripFixtures.visits((0, 0, 2), (1000, 60, 2))

        assert make_pipeline().analyze(points).layout_type == 'magazine'

    def test_grid_layout_for_many_places(self):
        points = TripFixtures.visits(*[(i * 1000, i * 60, 2) for i in range(6)])

        result = make_pipeline().analyze(points)

        assert result.place_count == 6
        assert result.layout_type == 'grid'

    def test_day_count_spans_calendar_days(self):
        points = TripFixtures.visits((0, 0, 3), (1000, 60 * 24, 3))

        assert make_pipeline().analyze(points).day_count == 2


class TestProgressStream:
    """Event stream ordering and cancellation"""

    def test_progress_is_monotonic_and_ends_with_outcome(self, three_visits):
        items = list(make_pipeline().run(three_visits))

        events = items[:-1]
        assert all(isinstance(event, ProgressEvent) for event in events)
        assert isinstance(items[-1], PipelineOutcome)
        assert items[-1].succeeded

        progress = [event.progress for event in events]
        assert progress == sorted(progress)
        assert events[-1].stage == Stage.DONE
        assert [event.progress for event in events].count(1.0) == 1
        assert events[0].description == 'Reading photo metadata...'

    def test_geocode_progress_per_cluster(self, three_visits):
        events = [item for item in make_pipeline().run(three_visits) if isinstance(item, ProgressEvent)]

        geocode_progress = [event.progress for event in events if event.stage == Stage.GEOCODE]
        assert geocode_progress == pytest.approx([0.6, 0.6 + 0.2 / 3, 0.6 + 0.4 / 3, 0.8])

    def test_stage_order(self, three_visits):
        stages = [item.stage for item in make_pipeline().run(three_visits) if isinstance(item, ProgressEvent)]

        assert list(dict.fromkeys(stages)) == list(Stage)

    def test_failure_outcome_has_no_done_event(self):
        items = list(make_pipeline().run([PhotoPoint(handle='a')]))

        assert isinstance(items[-1].error, NoLocationDataError)
        assert items[-1].result is None
        assert all(item.stage != Stage.DONE for item in items[:-1])

    def test_cancel_before_start(self, three_visits):
        cancel_event = threading.Event()
        cancel_event.set()

        items = list(make_pipeline().run(three_visits, cancel_event))

        assert len(items) == 1
        assert isinstance(items[0].error, AnalysisCancelledError)
        assert items[0].error.stage == 'extract-metadata'

    def test_cancel_during_geocoding(self, three_visits):
        cancel_event = threading.Event()

        def geocode_then_cancel(latitude, longitude):
            cancel_event.set()
            return TripFixtures.geocode_result('Deoksugung')

        geocoder = Mock(spec=ReverseGeocoder)
        geocoder.reverse_geocode.side_effect = geocode_then_cancel

        with pytest.raises(AnalysisCancelledError) as exc_info:
            make_pipeline(geocoder).analyze(three_visits, cancel_event=cancel_event)

        assert exc_info.value.stage == 'geocode'
        assert geocoder.reverse_geocode.call_count == 1

    def test_on_progress_callback(self, three_visits):
        seen = []

        make_pipeline().analyze(three_visits, on_progress=seen.append)

        assert seen[0].stage == Stage.EXTRACT_METADATA
        assert seen[-1].stage == Stage.DONE


class TestTakeoutSidecars:
    """Runs over real sidecar files, whose times are aware UTC"""

    def test_undated_sidecar_mixed_with_dated(self, tmp_path):
        undated = TripFixtures.get_test_sidecar(timestamp=None)
        del undated['creationTime']
        paths = TripFixtures.create_sidecar_files(
            tmp_path, {'IMG_0001.jpg': TripFixtures.get_test_sidecar(), 'IMG_0002.jpg': undated}
        )
        geocoder = Mock(spec=ReverseGeocoder)
        geocoder.reverse_geocode.return_value = TripFixtures.geocode_result('Deoksugung', 'museum')
        pipeline = AnalysisPipeline(
            extractor=SidecarMetadataExtractor(),
            geocoder=geocoder,
            classifier=ActivityClassifier(language='en', timezone=tz.UTC),
            language='en',
        )

        result = pipeline.analyze(paths)

        assert result.photo_count == 2
        assert result.start_date == datetime(2024, 3, 15, 9, 0, 0, tzinfo=UTC)
        assert result.end_date.tzinfo is not None
        assert result.end_date > result.start_date
        assert [place.photos[0].handle for place in result.places] == paths
        assert result.day_count >= 1

    def test_default_clock_is_aware(self):
        point = PhotoPoint(handle='undated', latitude=37.5665, longitude=126.978)
        dated = PhotoPoint('dated', datetime(2024, 3, 15, 9, 0, tzinfo=UTC), 37.5665, 126.978)
        pipeline = AnalysisPipeline(extractor=lambda point: point, geocoder=failing_geocoder())

        clusters = pipeline.analyze([point, dated]).places

        assert all(cluster.start_time.tzinfo is not None for cluster in clusters)
