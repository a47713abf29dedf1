import pytest
from pydantic import TypeAdapter, ValidationError

from geo_reminder.models import (
    AlarmCommand,
    Coordinate,
    CorrectionModel,
    Notify,
    RouteEstimate,
    SessionConfig,
    StopAlarm,
    ThresholdConfig,
)


@pytest.mark.unit
class TestCoordinate:
    def test_parse(self):
        assert Coordinate.parse(" -23.55, -46.63") == Coordinate(latitude=-23.55, longitude=-46.63)

    @pytest.mark.parametrize("text", ["-23.55", "a,b", "1,2,3"])
    def test_parse_rejects_malformed(self, text):
        with pytest.raises(ValueError):
            Coordinate.parse(text)

    def test_out_of_range(self):
        with pytest.raises(ValidationError):
            Coordinate(latitude=91.0, longitude=0.0)

    def test_frozen(self):
        coordinate = Coordinate(latitude=1.0, longitude=2.0)
        with pytest.raises(ValidationError):
            coordinate.latitude = 3.0

    def test_tuple_round_trip(self):
        assert Coordinate.from_tuple((1.5, 2.5)).as_tuple() == (1.5, 2.5)


@pytest.mark.unit
class TestRouteEstimate:
    def test_unit_conversions(self):
        estimate = RouteEstimate(distance_meters=4_800, duration_seconds=720)

        assert estimate.distance_km == 4.8
        assert estimate.duration_minutes == 12.0
        assert estimate.source == "provider"

    def test_rejects_negative_distance(self):
        with pytest.raises(ValidationError):
            RouteEstimate(distance_meters=-1, duration_seconds=0)


@pytest.mark.unit
class TestThresholdConfig:
    def test_from_user_units(self):
        thresholds = ThresholdConfig.from_user_units(10, 30)

        assert thresholds.distance_threshold_meters == 10_000
        assert thresholds.time_threshold_seconds == 1_800

    @pytest.mark.parametrize("distance,time", [(0, 30), (10, 0), (-1, 5)])
    def test_rejects_non_positive(self, distance, time):
        with pytest.raises(ValidationError):
            ThresholdConfig.from_user_units(distance, time)


@pytest.mark.unit
class TestCorrectionModel:
    def test_defaults(self):
        model = CorrectionModel()

        assert model.distance_ratio == 1.0
        assert model.average_speed_mps == 13.89

    def test_assignment_is_validated(self):
        model = CorrectionModel()
        with pytest.raises(ValidationError):
            model.average_speed_mps = 0


@pytest.mark.unit
class TestSessionConfig:
    def test_defaults(self):
        config = SessionConfig()

        assert config.destination is None
        assert config.thresholds == ThresholdConfig.from_user_units(10, 30)
        assert config.favorites == []


@pytest.mark.unit
class TestAlarmCommand:
    def test_discriminated_by_kind(self):
        adapter = TypeAdapter(AlarmCommand)

        assert adapter.validate_python({"kind": "stop_alarm"}) == StopAlarm()
        assert isinstance(
            adapter.validate_python({"kind": "notify", "title": "t", "body": "b"}), Notify
        )

    def test_unknown_kind(self):
        with pytest.raises(ValidationError):
            TypeAdapter(AlarmCommand).validate_python({"kind": "explode"})
