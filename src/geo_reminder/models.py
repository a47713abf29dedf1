"""Value types shared by the estimator, the evaluator and the session."""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

METERS_PER_KM = 1000.0
SECONDS_PER_MINUTE = 60.0


class Coordinate(BaseModel):
    """WGS84 position in degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    def as_tuple(self) -> tuple[float, float]:
        return self.latitude, self.longitude

    @classmethod
    def from_tuple(cls, coords: tuple[float, float]) -> "Coordinate":
        return cls(latitude=coords[0], longitude=coords[1])

    @classmethod
    def parse(cls, text: str) -> "Coordinate":
        """Parse a ``"lat,lon"`` string such as ``"-23.55,-46.63"``."""
        try:
            lat, lon = (float(part) for part in text.split(","))
        except ValueError as e:
            raise ValueError(f"Expected 'lat,lon', got {text!r}") from e
        return cls(latitude=lat, longitude=lon)


class TravelMode(str, Enum):
    """How the remaining distance is measured."""

    ROAD = "road"
    AERIAL = "aerial"


EstimateSource = Literal["provider", "local", "aerial"]


class RouteEstimate(BaseModel):
    """Remaining distance and duration to the destination."""

    model_config = ConfigDict(frozen=True)

    distance_meters: float = Field(ge=0.0)
    duration_seconds: float = Field(ge=0.0)
    # Carried over from the last provider answer for local estimates
    geometry: list[Coordinate] | None = None
    source: EstimateSource = "provider"

    @property
    def distance_km(self) -> float:
        return self.distance_meters / METERS_PER_KM

    @property
    def duration_minutes(self) -> float:
        return self.duration_seconds / SECONDS_PER_MINUTE


class ThresholdConfig(BaseModel):
    """User-set alert thresholds, evaluated with OR semantics."""

    model_config = ConfigDict(frozen=True)

    distance_threshold_meters: float = Field(gt=0.0)
    time_threshold_seconds: float = Field(gt=0.0)

    @classmethod
    def from_user_units(cls, distance_km: float, time_minutes: float) -> "ThresholdConfig":
        return cls(
            distance_threshold_meters=distance_km * METERS_PER_KM,
            time_threshold_seconds=time_minutes * SECONDS_PER_MINUTE,
        )


class CorrectionModel(BaseModel):
    """Road-to-great-circle ratio and observed speed used between provider calls."""

    model_config = ConfigDict(validate_assignment=True)

    distance_ratio: float = Field(default=1.0, gt=0.0)
    average_speed_mps: float = Field(default=13.89, gt=0.0)


class FavoriteLocation(BaseModel):
    id: str
    label: str
    icon: str = "heart"
    coordinate: Coordinate
    address: str = ""


class SearchResult(BaseModel):
    display_name: str
    coordinate: Coordinate
    importance: float = 0.5


class SessionConfig(BaseModel):
    """Persisted configuration of a reminder.

    Tracking-active state is never part of it: every restart needs an
    explicit ``start()``.
    """

    destination: Coordinate | None = None
    destination_name: str = ""
    thresholds: ThresholdConfig = Field(
        default_factory=lambda: ThresholdConfig.from_user_units(10.0, 30.0)
    )
    mode: TravelMode = TravelMode.ROAD
    sound_enabled: bool = True
    vibration_enabled: bool = True
    custom_sound_uri: str | None = None
    favorites: list[FavoriteLocation] = Field(default_factory=list)
    history: list[SearchResult] = Field(default_factory=list)


class StartAlarm(BaseModel):
    kind: Literal["start_alarm"] = "start_alarm"
    sound_enabled: bool = True
    vibration_enabled: bool = True
    # Custom alarm sound; presenters fall back to their default when it cannot be played
    sound_uri: str | None = None


class StopAlarm(BaseModel):
    kind: Literal["stop_alarm"] = "stop_alarm"


class Notify(BaseModel):
    kind: Literal["notify"] = "notify"
    title: str
    body: str
    use_alert_sound: bool = True


AlarmCommand = Annotated[StartAlarm | StopAlarm | Notify, Field(discriminator="kind")]
