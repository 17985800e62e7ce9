import gpxpy
import gpxpy.gpx

from route_speed.models import Coordinate


def parse_waypoints(filepath: str) -> list[Coordinate]:
    """Read route waypoints from a GPX file as (lon, lat) pairs.

    Uses the file's waypoints if it has any, then route points, then
    track points.
    """
    with open(filepath, "r") as f:
        gpx = gpxpy.parse(f)

    if gpx.waypoints:
        return [(pt.longitude, pt.latitude) for pt in gpx.waypoints]

    points: list[Coordinate] = []
    for route in gpx.routes:
        for pt in route.points:
            points.append((pt.longitude, pt.latitude))
    if points:
        return points

    for track in gpx.tracks:
        for segment in track.segments:
            for pt in segment.points:
                points.append((pt.longitude, pt.latitude))
    return points


def export_gpx(coordinates: list[Coordinate], name: str | None = None) -> str:
    """Serialize decoded route geometry as a GPX track."""
    gpx = gpxpy.gpx.GPX()
    track = gpxpy.gpx.GPXTrack(name=name)
    gpx.tracks.append(track)
    segment = gpxpy.gpx.GPXTrackSegment()
    track.segments.append(segment)
    for lon, lat in coordinates:
        segment.points.append(gpxpy.gpx.GPXTrackPoint(latitude=lat, longitude=lon))
    return gpx.to_xml()
