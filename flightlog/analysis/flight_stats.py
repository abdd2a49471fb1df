from dataclasses import dataclass
from statistics import mean
from typing import Optional, Sequence, Tuple

from flightlog.models import TelemetryPoint
from flightlog.utils.geo import path_length_m


@dataclass
class FlightSummary:
    duration_secs: Optional[float]
    total_distance: float               # meters
    max_altitude: Optional[float]       # meters
    max_speed: Optional[float]          # m/s
    avg_speed: Optional[float]          # m/s, mean of recorded speeds
    min_battery: Optional[int]          # percent
    home: Optional[Tuple[float, float]]  # (lat, lon)


def compute_stats(
    points: Sequence[TelemetryPoint],
    home: Optional[Tuple[float, float]] = None,
) -> FlightSummary:
    """
    Derive flight statistics from time-ordered samples.
    Distance is the sum of great-circle legs between consecutive GPS fixes.
    """
    if not points:
        return FlightSummary(None, 0.0, None, None, None, None, home)

    duration = (points[-1].timestamp_ms - points[0].timestamp_ms) / 1000.0

    fixes = [(p.latitude, p.longitude) for p in points if p.has_position]
    altitudes = [p.altitude for p in points if p.altitude is not None]
    speeds = [p.speed for p in points if p.speed is not None]
    batteries = [p.battery_percent for p in points if p.battery_percent is not None]

    if home is None and fixes:
        home = fixes[0]

    return FlightSummary(
        duration_secs=duration,
        total_distance=path_length_m(fixes),
        max_altitude=max(altitudes) if altitudes else None,
        max_speed=max(speeds) if speeds else None,
        avg_speed=mean(speeds) if speeds else None,
        min_battery=min(batteries) if batteries else None,
        home=home,
    )
