"""Credit pricing for geo-grid checks.

Formula: base + per_point * point_count

Examples (defaults: base 10, 1 per point):
  - 3x3 grid (9 points)  = 19
  - 5x5 grid (25 points) = 35
  - 7x7 grid (49 points) = 59
"""

from config.settings import settings


def calculate_geogrid_cost(point_count: int) -> int:
    """Credits charged for one scheduled geo-grid run over ``point_count`` check points.

    Pure and deterministic: the same point count always yields the same cost.
    """
    if point_count < 0:
        raise ValueError(f"point_count must be >= 0, got {point_count}")
    return settings.GEOGRID_BASE_CREDITS + point_count * settings.GEOGRID_CREDITS_PER_POINT
