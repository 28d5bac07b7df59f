"""Per-workout track distance from stored GPS points."""

import math

EARTH_RADIUS_M = 6371000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance in meters between two lat/lon points."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlam = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.asin(min(1.0, math.sqrt(a)))


def track_distance_m(points) -> float:
    """Sum of haversine distances between consecutive (lat, lon) pairs."""
    total = 0.0
    prev = None
    for lat, lon in points:
        if prev is not None:
            total += haversine_m(prev[0], prev[1], lat, lon)
        prev = (lat, lon)
    return total


def refresh_workout_distances(conn) -> int:
    """Rebuild workout_distance_m from workout_points. Returns the number of workouts written."""
    rows = conn.execute(
        "SELECT workout_id, lat, lon FROM workout_points ORDER BY workout_id, idx"
    ).fetchall()

    by_workout: dict[int, list[tuple[float, float]]] = {}
    for workout_id, lat, lon in rows:
        by_workout.setdefault(workout_id, []).append((lat, lon))

    distances = [
        (workout_id, track_distance_m(pts))
        for workout_id, pts in by_workout.items()
        if len(pts) >= 2
    ]

    with conn:
        conn.execute("DELETE FROM workout_distance_m")
        conn.executemany(
            "INSERT INTO workout_distance_m (workout_id, distance_m) VALUES (?, ?)",
            distances,
        )
    return len(distances)
