"""Speed profile synthesis for baseline and traffic-adjusted routes.

Each route is reduced to a list of SpeedSamples at cumulative distances.
The two lists generally have different lengths and sample positions, so
they are resampled onto one shared distance grid before being compared.
"""

import logging
import math
from dataclasses import dataclass, field

from route_speed.models import ComparisonPoint, Leg, RouteResponse, RouteResult, SpeedSample

logger = logging.getLogger(__name__)

MIN_SAMPLE_INTERVAL_M = 50.0
MAX_GRID_SEGMENTS = 100


def _round_half_up(value: float, decimals: int = 0) -> float:
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def _speed_kmh(distance: float, duration: float) -> float:
    return distance / duration * 3.6


def _leg_samples(leg: Leg, start_distance: float, start_index: int) -> tuple[list[SpeedSample], float, int]:
    """Samples for one leg at the finest available detail level.

    Priority is fixed: steps, then annotation arrays, then leg totals.
    A segment without a positive duration emits no sample but still
    advances the cumulative distance.

    Returns:
        (samples, cumulative distance after the leg, next step index)
    """
    samples: list[SpeedSample] = []
    cumulative = start_distance
    index = start_index

    if leg.steps:
        for step in leg.steps:
            if step.duration > 0:
                samples.append(SpeedSample(
                    distance_from_start=cumulative,
                    speed_kmh=_speed_kmh(step.distance, step.duration),
                    step_index=index,
                    geometry=step.geometry,
                ))
                index += 1
            cumulative += step.distance
    elif leg.annotation and leg.annotation.distance and leg.annotation.duration:
        for seg_distance, seg_duration in zip(leg.annotation.distance, leg.annotation.duration):
            if seg_duration and seg_duration > 0:
                samples.append(SpeedSample(
                    distance_from_start=cumulative,
                    speed_kmh=_speed_kmh(seg_distance, seg_duration),
                    step_index=index,
                ))
                index += 1
            cumulative += seg_distance or 0.0
    else:
        if leg.duration > 0:
            samples.append(SpeedSample(
                distance_from_start=cumulative,
                speed_kmh=_speed_kmh(leg.distance, leg.duration),
                step_index=index,
            ))
            index += 1
        cumulative += leg.distance

    return samples, cumulative, index


def extract_speed_samples(route: RouteResult | None, label: str = "baseline") -> list[SpeedSample]:
    """Extract speed samples from every leg of a route, in order."""
    if route is None or not route.legs:
        return []

    samples: list[SpeedSample] = []
    cumulative = 0.0
    index = 0
    for leg in route.legs:
        leg_samples, cumulative, index = _leg_samples(leg, cumulative, index)
        samples.extend(leg_samples)

    logger.debug("Extracted %d %s speed samples over %.0f m", len(samples), label, cumulative)
    return samples


def _final_distance(samples: list[SpeedSample]) -> float:
    return samples[-1].distance_from_start if samples else 0.0


def build_distance_grid(baseline: list[SpeedSample], traffic: list[SpeedSample]) -> list[float]:
    """Shared distance grid covering both sample lists.

    The interval is max(50 m, max_distance / 100), so the grid never holds
    more than 101 points. The final grid point equals max_distance whenever
    max_distance is a whole number of intervals.
    """
    max_distance = max(_final_distance(baseline), _final_distance(traffic))
    interval = max(MIN_SAMPLE_INTERVAL_M, max_distance / MAX_GRID_SEGMENTS)
    # Tolerance keeps max_distance itself when max_distance / 100 is the interval
    count = int(math.floor(max_distance / interval + 1e-9))
    return [min(i * interval, max_distance) for i in range(count + 1)]


def interpolate_speed_at(samples: list[SpeedSample], target_distance: float) -> float | None:
    """Speed at target_distance, linearly interpolated between neighbouring samples.

    Targets before the first sample or after the last are clamped to that
    sample's speed. Interpolated values are rounded to one decimal place.
    """
    if not samples:
        return None

    before = None
    after = None
    for sample in samples:
        if sample.distance_from_start <= target_distance:
            before = sample
        if sample.distance_from_start >= target_distance:
            after = sample
            break

    if before is None:
        return after.speed_kmh
    if after is None:
        return before.speed_kmh
    if before.distance_from_start == after.distance_from_start:
        return before.speed_kmh

    ratio = (target_distance - before.distance_from_start) / (
        after.distance_from_start - before.distance_from_start
    )
    speed = before.speed_kmh + (after.speed_kmh - before.speed_kmh) * ratio
    low = min(before.speed_kmh, after.speed_kmh)
    high = max(before.speed_kmh, after.speed_kmh)
    # Rounding must not step outside the two neighbouring speeds
    return min(max(_round_half_up(speed, 1), low), high)


def closest_sample(samples: list[SpeedSample], target_distance: float) -> SpeedSample | None:
    """Sample nearest to target_distance; ties go to the earlier sample."""
    if not samples:
        return None
    closest = samples[0]
    min_diff = abs(samples[0].distance_from_start - target_distance)
    for sample in samples[1:]:
        diff = abs(sample.distance_from_start - target_distance)
        if diff < min_diff:
            min_diff = diff
            closest = sample
    return closest


def build_comparison(baseline: list[SpeedSample], traffic: list[SpeedSample]) -> list[ComparisonPoint]:
    """Resample both series onto the shared grid.

    An empty series reads as None at every grid point. When both are
    empty there is nothing to compare and the result is empty.
    """
    if not baseline and not traffic:
        return []

    series = []
    for distance in build_distance_grid(baseline, traffic):
        nearest = closest_sample(baseline, distance)
        series.append(ComparisonPoint(
            distance=distance,
            speed=interpolate_speed_at(baseline, distance),
            traffic_speed=interpolate_speed_at(traffic, distance),
            step_index=nearest.step_index if nearest else 0,
            geometry=nearest.geometry if nearest else None,
        ))
    return series


def average_speeds(series: list[ComparisonPoint]) -> tuple[int, int | None]:
    """Mean of the positive grid speeds: (baseline km/h, traffic km/h or None)."""
    speeds = [p.speed for p in series if p.speed is not None and p.speed > 0]
    traffic_speeds = [p.traffic_speed for p in series if p.traffic_speed is not None and p.traffic_speed > 0]

    avg_speed = int(_round_half_up(sum(speeds) / len(speeds))) if speeds else 0
    avg_traffic = int(_round_half_up(sum(traffic_speeds) / len(traffic_speeds))) if traffic_speeds else None
    return avg_speed, avg_traffic


@dataclass
class SpeedProfile:
    baseline_samples: list[SpeedSample] = field(default_factory=list)
    traffic_samples: list[SpeedSample] = field(default_factory=list)
    series: list[ComparisonPoint] = field(default_factory=list)
    avg_speed: int = 0
    avg_traffic_speed: int | None = None

    @property
    def has_traffic(self) -> bool:
        return any(p.traffic_speed is not None for p in self.series)

    def to_dict(self) -> dict:
        return {
            "series": [p.to_dict() for p in self.series],
            "avg_speed": self.avg_speed,
            "avg_traffic_speed": self.avg_traffic_speed,
            "has_traffic": self.has_traffic,
        }


def _select_route(response: RouteResponse | None, route_index: int) -> RouteResult | None:
    if response is None or route_index >= len(response.routes):
        return None
    return response.routes[route_index]


def build_speed_profile(
    response: RouteResponse | None,
    traffic_response: RouteResponse | None = None,
    route_index: int = 0,
) -> SpeedProfile:
    """Build the full speed comparison for a baseline and optional traffic response."""
    baseline = extract_speed_samples(_select_route(response, route_index), "baseline")
    traffic = extract_speed_samples(_select_route(traffic_response, route_index), "traffic")
    series = build_comparison(baseline, traffic)
    avg_speed, avg_traffic = average_speeds(series)
    return SpeedProfile(
        baseline_samples=baseline,
        traffic_samples=traffic,
        series=series,
        avg_speed=avg_speed,
        avg_traffic_speed=avg_traffic,
    )
