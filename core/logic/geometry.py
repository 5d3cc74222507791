"""
Geometry comparison and serialization helpers.

Equality is never string equality: both sides are canonicalized (2D,
single-part multi geometries collapsed, shapely.normalize for vertex
order and ring orientation) and compared with equals_exact under a
per-coordinate tolerance. Re-exported files that reverse a line, start
a ring at a different vertex or add float noise compare equal.

Exports:
    canonicalize
    geometries_equal
    geometry_to_geojson / geometry_from_geojson
    compute_bounds
"""

import json
import math
from typing import Any, Dict, Iterable, Optional, Tuple

import shapely
from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry, BaseMultipartGeometry


Bounds = Tuple[float, float, float, float]


def canonicalize(geometry: Optional[BaseGeometry]) -> Optional[BaseGeometry]:
    if geometry is None:
        return None
    geom = shapely.force_2d(geometry)
    if isinstance(geom, BaseMultipartGeometry) and len(geom.geoms) == 1:
        geom = geom.geoms[0]
    return shapely.normalize(geom)


def geometries_equal(
    a: Optional[BaseGeometry],
    b: Optional[BaseGeometry],
    tolerance: float
) -> bool:
    """
    True when ``a`` and ``b`` describe the same shape within ``tolerance``.

    Example:
        >>> geometries_equal(LineString([(0, 0), (1, 1)]), LineString([(1, 1), (0, 0)]), 1e-5)
        True
    """
    if a is None or b is None:
        return a is None and b is None
    if a.is_empty or b.is_empty:
        return a.is_empty and b.is_empty

    ca = canonicalize(a)
    cb = canonicalize(b)
    if ca.geom_type != cb.geom_type:
        return False
    return bool(ca.equals_exact(cb, tolerance))


def geometry_to_geojson(geometry: Optional[BaseGeometry]) -> Optional[Dict[str, Any]]:
    if geometry is None:
        return None
    return json.loads(shapely.to_geojson(geometry))


def geometry_from_geojson(data: Optional[Dict[str, Any]]) -> Optional[BaseGeometry]:
    if not data:
        return None
    return shape(data)


def compute_bounds(geometries: Iterable[Optional[BaseGeometry]]) -> Optional[Bounds]:
    """
    Combined bounding box of all non-empty geometries with finite bounds.

    Returns None when nothing qualifies.
    """
    minx = miny = math.inf
    maxx = maxy = -math.inf
    found = False
    for geom in geometries:
        if geom is None or geom.is_empty:
            continue
        gx0, gy0, gx1, gy1 = geom.bounds
        if not all(math.isfinite(v) for v in (gx0, gy0, gx1, gy1)):
            continue
        minx, miny = min(minx, gx0), min(miny, gy0)
        maxx, maxy = max(maxx, gx1), max(maxy, gy1)
        found = True
    if not found:
        return None
    return (minx, miny, maxx, maxy)
