import argparse
import asyncio
import json
import logging
import sys

from route_speed.coordinator import RequestCoordinator
from route_speed.distance import locate, straight_line_distance
from route_speed.formatters import format_coordinates, format_distance, format_duration, format_speed
from route_speed.geometry import route_coordinates
from route_speed.models import GEOMETRY_FORMATS, ROUTING_ENGINES, VEHICLE_TYPES, Coordinate, RouteConfig, is_valid_coordinate
from route_speed.parser import export_gpx, parse_waypoints
from route_speed.solvice import _load_config
from route_speed.speed import build_speed_profile
from route_speed.traffic import calculate_traffic_difference, format_traffic_difference, traffic_severity

# Default values for CLI options
DEFAULTS = {
    "vehicle_type": None,
    "routing_engine": None,
    "geometries": "polyline",
    "alternatives": None,
    "debounce_ms": 0,
    "compare_traffic": True,
}


def parse_coordinate(value: str) -> Coordinate:
    """Parse a "lon,lat" argument."""
    try:
        lon_str, lat_str = value.split(",")
        coord = (float(lon_str), float(lat_str))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected lon,lat but got {value!r}")
    if not is_valid_coordinate(coord):
        raise argparse.ArgumentTypeError(f"Coordinates out of range: {value!r}")
    return coord


def build_parser(config: dict | None = None) -> argparse.ArgumentParser:
    """Build argument parser with defaults from config file."""
    if config is None:
        config = {}

    def get_default(key: str):
        return config.get(key, DEFAULTS[key])

    parser = argparse.ArgumentParser(
        description="Calculate a route and compare its speed profile against live traffic."
    )
    parser.add_argument(
        "waypoints",
        nargs="*",
        type=parse_coordinate,
        help="Ordered waypoints as lon,lat (at least 2 unless --gpx-in is given)",
    )
    parser.add_argument(
        "--gpx-in",
        default=None,
        help="Read waypoints from a GPX file instead of the command line",
    )
    parser.add_argument(
        "--vehicle",
        choices=VEHICLE_TYPES,
        default=get_default("vehicle_type"),
        help="Vehicle type (default: provider default)",
    )
    parser.add_argument(
        "--engine",
        choices=ROUTING_ENGINES,
        default=get_default("routing_engine"),
        help="Routing engine (default: provider default)",
    )
    parser.add_argument(
        "--geometries",
        choices=GEOMETRY_FORMATS,
        default=get_default("geometries"),
        help=f"Geometry encoding (default: {DEFAULTS['geometries']})",
    )
    parser.add_argument(
        "--alternatives",
        type=int,
        default=get_default("alternatives"),
        help="Number of alternative routes to request",
    )
    parser.add_argument(
        "--departure-time",
        default=None,
        help="Departure time for the baseline route (ISO-8601)",
    )
    parser.add_argument(
        "--debounce",
        type=float,
        default=get_default("debounce_ms"),
        help=f"Debounce delay in ms before the request is sent (default: {DEFAULTS['debounce_ms']})",
    )
    traffic = parser.add_mutually_exclusive_group()
    traffic.add_argument(
        "--traffic",
        dest="compare_traffic",
        action="store_true",
        default=get_default("compare_traffic"),
        help="Compare against a traffic-adjusted route (default)",
    )
    traffic.add_argument(
        "--no-traffic",
        dest="compare_traffic",
        action="store_false",
        help="Skip the traffic comparison",
    )
    parser.add_argument(
        "--locate",
        type=float,
        default=None,
        metavar="METERS",
        help="Print the route coordinate nearest this distance from the start",
    )
    parser.add_argument("--chart", default=None, help="Write the speed comparison chart to this PNG file")
    parser.add_argument("--gpx-out", default=None, help="Write the route geometry to this GPX file")
    parser.add_argument("--json", action="store_true", help="Print the speed comparison series as JSON")
    parser.add_argument("--imperial", action="store_true", help="Use imperial units in the chart")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


async def calculate(
    waypoints: list[Coordinate],
    config: RouteConfig,
    compare_traffic: bool,
    debounce_ms: float = 0,
    coordinator: RequestCoordinator | None = None,
):
    """Schedule one calculation and wait for both slots to settle."""
    coordinator = coordinator or RequestCoordinator()
    coordinator.schedule(waypoints, config, debounce_ms=debounce_ms, compare_traffic=compare_traffic)
    try:
        await coordinator.wait()
    finally:
        await coordinator.close()
    return coordinator.state


def main(argv: list[str] | None = None) -> None:
    config = _load_config()
    parser = build_parser(config)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    waypoints = list(args.waypoints)
    if args.gpx_in:
        try:
            waypoints = parse_waypoints(args.gpx_in)
        except FileNotFoundError:
            print(f"Error: File not found: {args.gpx_in}", file=sys.stderr)
            sys.exit(1)
        except Exception as e:
            print(f"Error parsing GPX file: {e}", file=sys.stderr)
            sys.exit(1)

    if len(waypoints) < 2:
        print("Error: At least 2 waypoints are required.", file=sys.stderr)
        sys.exit(1)

    try:
        route_config = RouteConfig(
            vehicle_type=args.vehicle,
            routing_engine=args.engine,
            geometries=args.geometries,
            departure_time=args.departure_time,
            alternatives=args.alternatives,
            steps=True,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    state = asyncio.run(calculate(waypoints, route_config, args.compare_traffic, args.debounce))

    if state.baseline.error:
        print(f"Error calculating route: {state.baseline.error}", file=sys.stderr)
        sys.exit(1)

    response = state.baseline.data
    traffic_response = state.traffic.data
    route = response.primary

    print("=== Route Summary ===")
    print(
        f"Config: vehicle={args.vehicle or 'default'} engine={args.engine or 'default'} "
        f"geometries={args.geometries} traffic={'on' if args.compare_traffic else 'off'}"
    )
    print(f"Waypoints:      {len(waypoints)}")
    dist_mi = route.distance / 1000 * 0.621371
    print(f"Distance:       {format_distance(route.distance)} ({dist_mi:.2f} mi)")
    print(f"Duration:       {format_duration(route.duration)}")
    if route.duration > 0:
        print(f"Avg Speed:      {format_speed(route.distance / route.duration)}")
    print(f"Straight Line:  {format_distance(straight_line_distance(waypoints))}")
    if len(response.routes) > 1:
        print(f"Alternatives:   {len(response.routes) - 1}")
    if state.baseline.calculation_time_ms is not None:
        print(f"Calculated in:  {state.baseline.calculation_time_ms} ms")

    if args.compare_traffic:
        if state.traffic.error:
            print(f"Traffic:        unavailable ({state.traffic.error})")
        else:
            diff = calculate_traffic_difference(response, traffic_response)
            if diff is not None:
                print(f"Traffic:        {format_traffic_difference(diff)} ({traffic_severity(diff)})")

    profile = build_speed_profile(response, traffic_response)
    if profile.series:
        line = f"Speed Profile:  avg {profile.avg_speed} km/h regular"
        if profile.avg_traffic_speed is not None:
            line += f", {profile.avg_traffic_speed} km/h traffic"
        print(f"{line} ({len(profile.series)} points)")

    coordinates = route_coordinates(route, args.geometries)

    if args.locate is not None:
        found = locate(coordinates, args.locate)
        if found is None:
            print("Locate:         no geometry available")
        else:
            print(f"Locate:         {format_coordinates(found)} at {format_distance(args.locate)}")

    if args.json:
        print(json.dumps(profile.to_dict(), indent=2))

    if args.chart:
        from route_speed.charts import generate_speed_chart

        png = generate_speed_chart(profile.series, profile.avg_speed, profile.avg_traffic_speed, args.imperial)
        with open(args.chart, "wb") as f:
            f.write(png)

    if args.gpx_out:
        if not coordinates:
            print("Error: Route has no decodable geometry.", file=sys.stderr)
            sys.exit(1)
        with open(args.gpx_out, "w") as f:
            f.write(export_gpx(coordinates, name="Route"))
