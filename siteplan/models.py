"""
Pydantic models for the Site Layout data structure

Inputs (boundary points, configuration, constraints, edits) and outputs
(generated geometry and statistics). Field names are snake_case in Python
and camelCase in JSON.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from shapely.geometry import mapping, shape
from shapely.geometry.base import BaseGeometry


class SiteModel(BaseModel):
    """Base model: camelCase JSON aliases, snake_case attributes"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================
# GeoJSON Types
# ============================================================

class GeoJSONPoint(SiteModel):
    type: Literal["Point"] = "Point"
    coordinates: List[float]  # [longitude, latitude]


class GeoJSONPolygon(SiteModel):
    type: Literal["Polygon"] = "Polygon"
    coordinates: List[List[List[float]]]  # [[[lon, lat], ...]]


class GeoJSONMultiPolygon(SiteModel):
    type: Literal["MultiPolygon"] = "MultiPolygon"
    coordinates: List[List[List[List[float]]]]


class GeoJSONLineString(SiteModel):
    type: Literal["LineString"] = "LineString"
    coordinates: List[List[float]]  # [[lon, lat], ...]


class GeoJSONMultiLineString(SiteModel):
    type: Literal["MultiLineString"] = "MultiLineString"
    coordinates: List[List[List[float]]]


AreaGeometry = Annotated[Union[GeoJSONPolygon, GeoJSONMultiPolygon], Field(discriminator="type")]
LineGeometry = Annotated[Union[GeoJSONLineString, GeoJSONMultiLineString], Field(discriminator="type")]


# ============================================================
# Input Models
# ============================================================

class LatLng(SiteModel):
    lat: float
    lng: float


class SiteConfig(SiteModel):
    """Per-run layout parameters. Every field is required."""
    road_width: float = Field(gt=0)  # meters
    lot_width: float = Field(gt=0)  # meters (lot frontage)
    lot_depth: float = Field(gt=0)  # meters
    park_percentage: float = Field(ge=0, le=100)  # Target % of block area given to parks
    stories: int = Field(ge=1)
    entry_index: int = Field(ge=0)  # Selects among detected entrances, modulo their count


class ConstraintType(str, Enum):
    """User constraint types"""
    PARK_ANCHOR = "PARK_ANCHOR"


class UserConstraint(SiteModel):
    id: str
    type: ConstraintType
    position: LatLng


class CustomRoad(SiteModel):
    p1: LatLng
    p2: LatLng


# ============================================================
# Feature Properties
# ============================================================

class LotProps(SiteModel):
    lot_id: int
    is_bottom_row: bool
    alignment_angle: float  # Principal axis, degrees counter-clockwise from east


class BuildingProps(SiteModel):
    lot_id: int
    height_factor: float
    color_variant: int
    stories: int = 1


class ParkProps(SiteModel):
    park_id: int


class TreeProps(SiteModel):
    kind: Literal["lot-tree", "park-tree"]
    lot_id: Optional[int] = None
    park_id: Optional[int] = None

    @model_validator(mode="after")
    def _single_owner(self) -> "TreeProps":
        if (self.lot_id is None) == (self.park_id is None):
            raise ValueError("a tree belongs to exactly one lot or one park")
        return self


# ============================================================
# Features
# ============================================================

class AreaFeature(SiteModel):
    type: Literal["Feature"] = "Feature"
    geometry: AreaGeometry
    properties: Dict[str, Any] = Field(default_factory=dict)


class LineFeature(SiteModel):
    type: Literal["Feature"] = "Feature"
    geometry: LineGeometry
    properties: Dict[str, Any] = Field(default_factory=dict)


class PointFeature(SiteModel):
    type: Literal["Feature"] = "Feature"
    geometry: GeoJSONPoint
    properties: Dict[str, Any] = Field(default_factory=dict)


class LotFeature(SiteModel):
    type: Literal["Feature"] = "Feature"
    geometry: AreaGeometry
    properties: LotProps


class BuildingFeature(SiteModel):
    type: Literal["Feature"] = "Feature"
    geometry: AreaGeometry
    properties: BuildingProps


class ParkFeature(SiteModel):
    type: Literal["Feature"] = "Feature"
    geometry: AreaGeometry
    properties: ParkProps


class TreeFeature(SiteModel):
    type: Literal["Feature"] = "Feature"
    geometry: GeoJSONPoint
    properties: TreeProps


# ============================================================
# Output Models
# ============================================================

class AccessControl(SiteModel):
    type: Literal["GATE"] = "GATE"
    island: AreaFeature
    guard_house: Optional[AreaFeature] = None
    barriers: List[LineFeature] = Field(default_factory=list)
    entry_point: LatLng
    rotation: float  # Road bearing at the entry, degrees clockwise from north


class GeneratedGeometry(SiteModel):
    site_boundary: Optional[AreaFeature] = None
    superblocks: List[Optional[AreaFeature]] = Field(default_factory=list)
    roads: List[AreaFeature] = Field(default_factory=list)
    lots: List[Optional[LotFeature]] = Field(default_factory=list)
    buildings: List[BuildingFeature] = Field(default_factory=list)
    parks: List[Optional[ParkFeature]] = Field(default_factory=list)
    trees: List[TreeFeature] = Field(default_factory=list)
    perimeter_walls: List[LineFeature] = Field(default_factory=list)
    access_control: Optional[AccessControl] = None
    road_markings: List[AreaFeature] = Field(default_factory=list)
    stop_signs: List[PointFeature] = Field(default_factory=list)
    entrance_candidates: List[LatLng] = Field(default_factory=list)
    is_valid: bool = False
    error: Optional[str] = None


class ProjectStats(SiteModel):
    site_area: float = 0.0
    net_sellable_area: float = 0.0  # Sum of lot areas
    road_area: float = 0.0  # Site minus sellable minus park
    park_area: float = 0.0
    total_lots: int = 0
    efficiency: float = 0.0  # Net sellable / site area
    possible_entrances: int = 0


class GenerationResult(SiteModel):
    """Complete output of one generation run"""
    geometry: GeneratedGeometry
    stats: ProjectStats


class LayoutOverrides(SiteModel):
    """Consumer edits applied on top of a generated layout"""
    overrides: Dict[str, Optional[AreaFeature]] = Field(default_factory=dict)  # "lot-3", "park-0", "block-2", "bldg-3"
    custom_roads: List[CustomRoad] = Field(default_factory=list)


# ============================================================
# Shapely conversion
# ============================================================

def area_geometry(geom: BaseGeometry) -> Union[GeoJSONPolygon, GeoJSONMultiPolygon]:
    """Polygon or MultiPolygon shapely geometry to its GeoJSON model"""
    if geom.geom_type == "Polygon":
        return GeoJSONPolygon.model_validate(mapping(geom))
    if geom.geom_type == "MultiPolygon":
        return GeoJSONMultiPolygon.model_validate(mapping(geom))
    raise ValueError(f"Expected a polygonal geometry, got {geom.geom_type}")


def line_geometry(geom: BaseGeometry) -> Union[GeoJSONLineString, GeoJSONMultiLineString]:
    """LineString or MultiLineString shapely geometry to its GeoJSON model"""
    if geom.geom_type == "LineString":
        return GeoJSONLineString.model_validate(mapping(geom))
    if geom.geom_type == "MultiLineString":
        return GeoJSONMultiLineString.model_validate(mapping(geom))
    raise ValueError(f"Expected a linear geometry, got {geom.geom_type}")


def point_geometry(geom: BaseGeometry) -> GeoJSONPoint:
    return GeoJSONPoint(coordinates=[geom.x, geom.y])


def to_shape(model: BaseModel) -> BaseGeometry:
    """GeoJSON model (or feature) to a shapely geometry"""
    geometry = getattr(model, "geometry", model)
    return shape(geometry.model_dump())
