"""
Feature-level models shared by the parser, validator, diff engine and
production repository.

CanonicalFeature and ProductionRecord carry shapely geometries and are
plain dataclasses; LayerInfo and ImportScope cross the API boundary and
are Pydantic models.

Exports:
    ImportScope: Bounding box scope, serialized as "bbox:minx,miny,maxx,maxy"
    LayerInfo: Layer listing entry
    CanonicalFeature: Parsed import feature in EPSG:4326
    ProductionRecord: Row of the production asset table
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from shapely.geometry import box
from shapely.geometry.base import BaseGeometry

from .enums import RecordStatus


SCOPE_PREFIX = "bbox:"


class ImportScope(BaseModel):
    """
    Axis-aligned bounding box in EPSG:4326.

    Stored on the ledger as ``bbox:minx,miny,maxx,maxy``.
    """
    model_config = ConfigDict(frozen=True)

    minx: float
    miny: float
    maxx: float
    maxy: float

    @model_validator(mode="after")
    def _ordered(self):
        if self.minx > self.maxx or self.miny > self.maxy:
            raise ValueError(f"Scope bounds out of order: {self.to_string()}")
        return self

    def to_string(self) -> str:
        return f"{SCOPE_PREFIX}{self.minx},{self.miny},{self.maxx},{self.maxy}"

    @classmethod
    def parse(cls, value: str) -> "ImportScope":
        if not value or not value.startswith(SCOPE_PREFIX):
            raise ValueError(f"Unsupported scope format: {value!r}")
        parts = value[len(SCOPE_PREFIX):].split(",")
        if len(parts) != 4:
            raise ValueError(f"Scope must have 4 coordinates: {value!r}")
        minx, miny, maxx, maxy = (float(p) for p in parts)
        return cls(minx=minx, miny=miny, maxx=maxx, maxy=maxy)

    @classmethod
    def from_bounds(cls, bounds) -> "ImportScope":
        minx, miny, maxx, maxy = bounds
        return cls(minx=minx, miny=miny, maxx=maxx, maxy=maxy)

    def as_polygon(self):
        return box(self.minx, self.miny, self.maxx, self.maxy)

    def intersects(self, geometry: Optional[BaseGeometry]) -> bool:
        if geometry is None or geometry.is_empty:
            return False
        return self.as_polygon().intersects(geometry)


class LayerInfo(BaseModel):
    """One entry of a layer listing."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    feature_count: int = Field(ge=0)
    geometry_type: Optional[str] = None


@dataclass
class CanonicalFeature:
    """
    One parsed import feature.

    ``feature_id`` and ``data_source`` are lifted out of the property map;
    ``attributes`` holds everything else. ``geometry`` is None when the
    source feature had a null geometry.
    """
    index: int
    feature_id: Optional[str]
    geometry: Optional[BaseGeometry]
    attributes: Dict[str, Any] = field(default_factory=dict)
    data_source: Optional[str] = None


@dataclass
class ProductionRecord:
    """One row of the production asset table."""
    id: str
    geometry: Optional[BaseGeometry]
    attributes: Dict[str, Any] = field(default_factory=dict)
    status: RecordStatus = RecordStatus.ACTIVE
    data_source: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE
