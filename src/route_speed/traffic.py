"""Traffic comparison helpers."""

from datetime import datetime, timezone

from route_speed.models import RouteConfig, RouteResponse

TRAFFIC_ENGINE = "TOMTOM"
SEVERE_DELAY_SECONDS = 900  # 15 minutes
NO_DELAY_THRESHOLD_SECONDS = 45


def should_compare_traffic(config: RouteConfig | None, default: bool = True) -> bool:
    """Whether a traffic comparison should be attempted for this config.

    No vehicle or engine constraint currently disables the comparison, so
    this returns the configured default for every config.
    """
    return default


def traffic_route_config(config: RouteConfig | None, now: datetime | None = None) -> RouteConfig:
    """Copy of config routed on the traffic-capable engine, departing now."""
    config = config or RouteConfig()
    if now is None:
        now = datetime.now(timezone.utc)
    departure = now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return config.with_changes(routing_engine=TRAFFIC_ENGINE, departure_time=departure)


def calculate_traffic_difference(
    baseline: RouteResponse | None, traffic: RouteResponse | None
) -> float | None:
    """Traffic route duration minus baseline duration, in seconds.

    Positive means a traffic delay, negative a saving. None when either
    response is missing or has no routes.
    """
    if baseline is None or traffic is None:
        return None
    if not baseline.routes or not traffic.routes:
        return None
    return traffic.routes[0].duration - baseline.routes[0].duration


def format_traffic_difference(seconds: float | None) -> str:
    """Format a traffic difference as "+3 min", "-1h 5m" or "No delay"."""
    if seconds is None:
        return ""
    if seconds == 0:
        return "No delay"

    abs_seconds = abs(seconds)
    sign = "+" if seconds > 0 else "-"
    minutes = 0 if abs_seconds < NO_DELAY_THRESHOLD_SECONDS else int(abs_seconds / 60 + 0.5)
    if minutes == 0:
        return "No delay"
    if minutes < 60:
        return f"{sign}{minutes} min"

    hours, remaining = divmod(minutes, 60)
    if remaining == 0:
        return f"{sign}{hours}h"
    return f"{sign}{hours}h {remaining}m"


def traffic_severity(seconds: float | None) -> str | None:
    """Classify a traffic difference: none, savings, minor or severe."""
    if seconds is None:
        return None
    if seconds == 0:
        return "none"
    if seconds < 0:
        return "savings"
    if seconds < SEVERE_DELAY_SECONDS:
        return "minor"
    return "severe"
