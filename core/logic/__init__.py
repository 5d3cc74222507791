"""
Core Business Logic Package.

Contains business logic that operates on pure data models.
Separated from models to maintain clean architecture.

Exports:
    State transitions: can_version_transition, can_delete_version, can_job_transition
    Geometry: canonicalize, geometries_equal, compute_bounds
"""

from .transitions import (
    can_version_transition,
    can_delete_version,
    can_job_transition,
    get_job_terminal_states,
    get_job_active_states,
    is_job_terminal,
)

from .geometry import (
    canonicalize,
    geometries_equal,
    geometry_to_geojson,
    geometry_from_geojson,
    compute_bounds,
)

__all__ = [
    'can_version_transition',
    'can_delete_version',
    'can_job_transition',
    'get_job_terminal_states',
    'get_job_active_states',
    'is_job_terminal',
    'canonicalize',
    'geometries_equal',
    'geometry_to_geojson',
    'geometry_from_geojson',
    'compute_bounds',
]
