"""JSON API for route calculation and speed profiles."""

import logging
from dataclasses import asdict

from flask import Flask, jsonify, request

from route_speed import __version__, __version_date__, get_git_hash
from route_speed.distance import locate
from route_speed.geometry import decode_geometry
from route_speed.models import RouteConfig, RouteResponse, is_valid_coordinate
from route_speed.solvice import (
    InvalidResponseError,
    NetworkError,
    NoRouteFound,
    UpstreamError,
    build_request,
    fetch_route,
    is_configured,
)
from route_speed.speed import build_speed_profile

logger = logging.getLogger(__name__)

app = Flask(__name__)


@app.route("/api/version")
def version():
    return jsonify({
        "version": __version__,
        "version_date": __version_date__,
        "git_hash": get_git_hash(),
    })


@app.route("/api/route", methods=["POST"])
def api_route():
    """Validate a route request and forward it to the routing service."""
    body = request.get_json(silent=True) or {}
    coordinates = body.get("coordinates")

    if not isinstance(coordinates, list) or len(coordinates) < 2:
        return jsonify({"error": "At least 2 coordinates are required"}), 400
    for i, coord in enumerate(coordinates):
        if not is_valid_coordinate(coord):
            return jsonify({"error": f"Invalid coordinates at index {i}"}), 400

    try:
        config = RouteConfig.from_payload({k: v for k, v in body.items() if k != "coordinates"})
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    if not is_configured():
        logger.error("SOLVICE_API_KEY is not set")
        return jsonify({"error": "Route calculation service is not configured"}), 503

    try:
        response = fetch_route(build_request(coordinates, config))
    except NoRouteFound:
        return jsonify({"error": "No routes found"}), 404
    except UpstreamError as e:
        return jsonify({"error": e.message}), e.status or 502
    except (NetworkError, InvalidResponseError) as e:
        return jsonify({"error": str(e)}), 502
    except Exception:
        logger.exception("Route API error")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(asdict(response))


def _response_from(body: dict, key: str) -> RouteResponse | None:
    data = body.get(key)
    if not isinstance(data, dict):
        return None
    return RouteResponse.from_dict(data)


@app.route("/api/speed-profile", methods=["POST"])
def api_speed_profile():
    """Build the speed comparison series for a baseline and optional traffic response."""
    body = request.get_json(silent=True) or {}
    if not isinstance(body.get("route"), dict):
        return jsonify({"error": "Missing route"}), 400
    try:
        route = _response_from(body, "route")
        traffic_route = _response_from(body, "traffic_route")
        route_index = int(body.get("route_index", 0))
        profile = build_speed_profile(route, traffic_route, route_index)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid route data: {e}"}), 400
    return jsonify(profile.to_dict())


@app.route("/api/locate", methods=["POST"])
def api_locate():
    """Resolve the route coordinate nearest a distance from the start."""
    body = request.get_json(silent=True) or {}
    try:
        distance = float(body["distance"])
        coordinates = decode_geometry(body.get("geometry"), body.get("geometries", "polyline"))
    except (KeyError, TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid locate request: {e}"}), 400

    found = locate(coordinates, distance)
    return jsonify({"coordinate": list(found) if found else None})


def main():
    """Run the web server."""
    import os
    port = int(os.environ.get("PORT", 5050))
    print("Starting Route Speed API server...")
    print(f"Listening on http://localhost:{port}")
    app.run(host="0.0.0.0", port=port, debug=True)


if __name__ == "__main__":
    main()
