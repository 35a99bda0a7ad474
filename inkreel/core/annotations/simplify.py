"""
Polyline simplification for freehand strokes (Ramer-Douglas-Peucker).
"""
import math
from typing import List, Sequence

from .models import Point

DEFAULT_EPSILON = 0.003


def perpendicular_distance(p: Point, a: Point, b: Point) -> float:
    """
    Distance from p to the infinite line through a and b.

    A degenerate line (a == b) yields 0.
    """
    den = math.hypot(b.y - a.y, b.x - a.x)
    if not den:
        return 0.0
    num = abs((b.y - a.y) * p.x - (b.x - a.x) * p.y + b.x * a.y - b.y * a.x)
    return num / den


def simplify(points: Sequence[Point], epsilon: float) -> List[Point]:
    """
    Reduce a polyline to the points needed to stay within epsilon of it.

    Args:
        points: Ordered stroke points
        epsilon: Maximum tolerated perpendicular deviation, in the same
            units as the points

    Returns:
        A new list that starts and ends with the original endpoints and is
        never longer than the input
    """
    if epsilon < 0:
        raise ValueError(f"epsilon must be non-negative, got {epsilon}")
    pts = list(points)
    if len(pts) < 3:
        return pts

    keep = [False] * len(pts)
    keep[0] = keep[-1] = True
    # Explicit stack: long zigzags would exceed the recursion limit
    stack = [(0, len(pts) - 1)]
    while stack:
        first, last = stack.pop()
        dmax = 0.0
        idx = first
        for i in range(first + 1, last):
            d = perpendicular_distance(pts[i], pts[first], pts[last])
            if d > dmax:
                dmax = d
                idx = i
        if dmax > epsilon:
            keep[idx] = True
            stack.append((first, idx))
            stack.append((idx, last))

    return [p for p, kept in zip(pts, keep) if kept]
