import math
from dataclasses import dataclass, field, replace
from typing import Any

# (longitude, latitude)
Coordinate = tuple[float, float]

VEHICLE_TYPES = ("CAR", "BIKE", "TRUCK", "ELECTRIC_CAR", "ELECTRIC_BIKE")
ROUTING_ENGINES = ("OSM", "TOMTOM", "GOOGLE", "ANYMAP")
GEOMETRY_FORMATS = ("polyline", "polyline6", "geojson")
OVERVIEW_MODES = ("full", "simplified", "false")
SNAPPING_MODES = ("default", "any")


def is_valid_coordinate(coord: Any) -> bool:
    """Check that coord is a (lon, lat) pair inside geographic bounds."""
    if not isinstance(coord, (list, tuple)) or len(coord) != 2:
        return False
    lon, lat = coord
    for value in (lon, lat):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if math.isnan(value):
            return False
    return -180 <= lon <= 180 and -90 <= lat <= 90


@dataclass(frozen=True)
class RouteConfig:
    """Options sent alongside the coordinates of a route request.

    Every field is optional; None means "let the provider decide" and the
    field is left out of the request body.
    """

    vehicle_type: str | None = None
    routing_engine: str | None = None
    geometries: str | None = None
    departure_time: str | None = None  # ISO-8601
    alternatives: int | None = None
    steps: bool | None = None
    annotations: tuple[str, ...] | None = None
    overview: str | None = "full"
    continue_straight: bool | None = None
    snapping: str | None = None
    interpolate: bool | None = None
    generate_hints: bool | None = None

    def __post_init__(self):
        _check_choice("vehicle_type", self.vehicle_type, VEHICLE_TYPES)
        _check_choice("routing_engine", self.routing_engine, ROUTING_ENGINES)
        _check_choice("geometries", self.geometries, GEOMETRY_FORMATS)
        _check_choice("overview", self.overview, OVERVIEW_MODES)
        _check_choice("snapping", self.snapping, SNAPPING_MODES)
        if isinstance(self.annotations, str):
            object.__setattr__(self, "annotations", (self.annotations,))
        elif self.annotations is not None and not isinstance(self.annotations, tuple):
            object.__setattr__(self, "annotations", tuple(self.annotations))

    def with_changes(self, **changes) -> "RouteConfig":
        return replace(self, **changes)

    def to_payload(self) -> dict:
        """Request-body fields for this config, in the provider's naming."""
        names = {
            "vehicle_type": "vehicleType",
            "routing_engine": "routingEngine",
            "departure_time": "departureTime",
        }
        payload = {}
        for key in (
            "vehicle_type", "routing_engine", "geometries", "departure_time",
            "alternatives", "steps", "annotations", "overview",
            "continue_straight", "snapping", "interpolate", "generate_hints",
        ):
            value = getattr(self, key)
            if value is None:
                continue
            if key == "annotations":
                value = list(value)
            payload[names.get(key, key)] = value
        return payload

    @classmethod
    def from_payload(cls, data: dict) -> "RouteConfig":
        """Build a config from request-body style keys (camelCase or snake_case)."""
        aliases = {
            "vehicleType": "vehicle_type",
            "routingEngine": "routing_engine",
            "departureTime": "departure_time",
        }
        known = {f for f in cls.__dataclass_fields__}
        kwargs = {}
        for key, value in data.items():
            key = aliases.get(key, key)
            if key in known:
                kwargs[key] = value
        return cls(**kwargs)


def _check_choice(name: str, value: str | None, choices: tuple[str, ...]) -> None:
    if value is not None and value not in choices:
        raise ValueError(f"Invalid {name}: {value!r} (expected one of {', '.join(choices)})")


@dataclass(frozen=True)
class RouteRequest:
    coordinates: tuple[Coordinate, ...]
    config: RouteConfig = field(default_factory=RouteConfig)

    def __post_init__(self):
        coords = tuple(tuple(c) if isinstance(c, list) else c for c in self.coordinates)
        if len(coords) < 2:
            raise ValueError("At least 2 coordinates are required")
        for i, coord in enumerate(coords):
            if not is_valid_coordinate(coord):
                raise ValueError(f"Invalid coordinates at index {i}")
        object.__setattr__(self, "coordinates", coords)

    def to_payload(self) -> dict:
        payload = {"coordinates": [[lon, lat] for lon, lat in self.coordinates]}
        payload.update(self.config.to_payload())
        return payload


@dataclass
class Step:
    distance: float  # meters
    duration: float  # seconds
    geometry: str | None = None
    name: str | None = None
    ref: str | None = None
    destinations: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Step":
        geometry = data.get("geometry")
        return cls(
            distance=data.get("distance") or 0.0,
            duration=data.get("duration") or 0.0,
            geometry=geometry if isinstance(geometry, str) else None,
            name=data.get("name"),
            ref=data.get("ref"),
            destinations=data.get("destinations"),
        )


@dataclass
class Annotation:
    distance: list[float]  # meters per segment
    duration: list[float]  # seconds per segment

    @classmethod
    def from_dict(cls, data: dict) -> "Annotation":
        return cls(
            distance=list(data.get("distance") or []),
            duration=list(data.get("duration") or []),
        )


@dataclass
class Leg:
    """A route leg between two consecutive waypoints.

    Speed extraction reads the finest detail level present, in this fixed
    priority order: steps, then annotation arrays, then the leg totals.
    """

    distance: float  # meters
    duration: float  # seconds
    steps: list[Step] = field(default_factory=list)
    annotation: Annotation | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Leg":
        annotation = data.get("annotation")
        return cls(
            distance=data.get("distance") or 0.0,
            duration=data.get("duration") or 0.0,
            steps=[Step.from_dict(s) for s in data.get("steps") or []],
            annotation=Annotation.from_dict(annotation) if annotation else None,
        )


@dataclass
class RouteResult:
    distance: float  # meters
    duration: float  # seconds
    geometry: Any = None  # encoded string, or GeoJSON string/dict
    legs: list[Leg] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "RouteResult":
        return cls(
            distance=data.get("distance") or 0.0,
            duration=data.get("duration") or 0.0,
            geometry=data.get("geometry"),
            legs=[Leg.from_dict(leg) for leg in data.get("legs") or []],
        )


@dataclass
class Waypoint:
    location: Coordinate
    name: str | None = None
    distance: float | None = None
    hint: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "Waypoint":
        lon, lat = data["location"]
        return cls(
            location=(lon, lat),
            name=data.get("name"),
            distance=data.get("distance"),
            hint=data.get("hint"),
        )


@dataclass
class RouteResponse:
    routes: list[RouteResult]
    waypoints: list[Waypoint] = field(default_factory=list)
    code: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "RouteResponse":
        return cls(
            routes=[RouteResult.from_dict(r) for r in data.get("routes") or []],
            waypoints=[Waypoint.from_dict(w) for w in data.get("waypoints") or [] if w.get("location")],
            code=data.get("code"),
        )

    @property
    def primary(self) -> RouteResult | None:
        return self.routes[0] if self.routes else None


@dataclass
class SpeedSample:
    distance_from_start: float  # meters
    speed_kmh: float
    step_index: int
    geometry: str | None = None


@dataclass
class ComparisonPoint:
    distance: float  # meters along the route
    speed: float | None  # km/h, baseline route
    traffic_speed: float | None  # km/h, traffic-adjusted route
    step_index: int = 0  # closest baseline sample
    geometry: str | None = None

    def to_dict(self) -> dict:
        return {
            "distance": self.distance,
            "speed": self.speed,
            "traffic_speed": self.traffic_speed,
            "step_index": self.step_index,
            "geometry": self.geometry,
        }
