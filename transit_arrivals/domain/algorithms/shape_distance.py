from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from transit_arrivals.domain.algorithms.geo_utils import (
    haversine_distance_m,
    project_point_onto_segment,
)
from transit_arrivals.domain.models import GeoPoint, ShapeDistanceResult

MAX_OFF_ROUTE_M = 500.0


@dataclass(frozen=True, slots=True)
class PolylineProjection:
    arc_m: float
    offset_m: float
    segment_index: int

    def is_on_route(self, max_offset_m: float = MAX_OFF_ROUTE_M) -> bool:
        return self.offset_m <= max_offset_m


def build_cumulative_distances_m(points: Sequence[GeoPoint]) -> tuple[float, ...]:
    if len(points) < 2:
        return (0.0,) * len(points)

    out: list[float] = [0.0]
    total = 0.0
    for i in range(1, len(points)):
        total += haversine_distance_m(points[i - 1], points[i])
        out.append(total)
    return tuple(out)


def project_onto_polyline(
    point: GeoPoint,
    points: Sequence[GeoPoint],
    cumulative_m: Sequence[float] | None = None,
) -> PolylineProjection:
    """Snap point to the nearest segment of the polyline.

    The first segment with the smallest perpendicular distance wins ties.
    """

    if len(points) < 2:
        raise ValueError("A polyline needs at least two points")
    if cumulative_m is None:
        cumulative_m = build_cumulative_distances_m(points)

    best_offset = float("inf")
    best_arc = 0.0
    best_index = -1
    for i in range(len(points) - 1):
        seg_len = cumulative_m[i + 1] - cumulative_m[i]
        t, offset = project_point_onto_segment(point, points[i], points[i + 1])
        if offset < best_offset:
            best_offset = offset
            best_arc = cumulative_m[i] + t * seg_len
            best_index = i

    return PolylineProjection(
        arc_m=best_arc, offset_m=best_offset, segment_index=best_index
    )


def shape_route_distance(
    points: Sequence[GeoPoint],
    vehicle: GeoPoint,
    stop: GeoPoint,
    *,
    max_offset_m: float = MAX_OFF_ROUTE_M,
) -> ShapeDistanceResult | None:
    """Distance along the polyline from vehicle to stop.

    Returns None when the shape is unusable or the vehicle is off-route.
    """

    if len(points) < 2:
        return None

    cumulative = build_cumulative_distances_m(points)
    vehicle_proj = project_onto_polyline(vehicle, points, cumulative)
    if not vehicle_proj.is_on_route(max_offset_m):
        return None

    stop_proj = project_onto_polyline(stop, points, cumulative)

    remaining = stop_proj.arc_m - vehicle_proj.arc_m
    passed = remaining < 0.0
    return ShapeDistanceResult(
        route_distance_m=0.0 if passed else remaining,
        vehicle_arc_m=vehicle_proj.arc_m,
        stop_arc_m=stop_proj.arc_m,
        total_arc_m=cumulative[-1],
        vehicle_offset_m=vehicle_proj.offset_m,
        passed=passed,
    )
