"""Route generation request/response schemas."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from ..models.domain import StrategyTag, Topology, TravelMode


class PointModel(BaseModel):
    lat: float
    lng: float


class LocationInput(BaseModel):
    """A location given either as coordinates or as a free-form address."""

    point: Optional[PointModel] = None
    address: Optional[str] = Field(default=None, description="Address to geocode when no point is given.")

    @model_validator(mode="after")
    def _require_point_or_address(self) -> "LocationInput":
        if self.point is None and not (self.address and self.address.strip()):
            raise ValueError("Either 'point' or a non-empty 'address' is required.")
        return self


class RouteGenerationRequest(BaseModel):
    start: LocationInput
    end: Optional[LocationInput] = Field(
        default=None,
        description="Destination for point-to-point routes. Ignored when return_to_start is set.",
    )
    target_km: float = Field(..., gt=0, description="Requested route length in kilometres.")
    mode: TravelMode = TravelMode.WALKING
    return_to_start: bool = False
    poi_categories: List[str] = Field(default_factory=list, description="POI category ids to include.")
    seed: Optional[int] = Field(default=None, description="Seed for reproducible waypoint placement.")
    persist: bool = False
    run_label: Optional[str] = Field(default=None, description="Friendly name for persisted outputs.")


class AttemptModel(BaseModel):
    attempt_index: int
    radius_factor: float
    resulting_distance_km: Optional[float] = None
    deviation_km: Optional[float] = None
    error: Optional[str] = None


class POIModel(BaseModel):
    name: str
    short_name: str
    category: str
    lat: float
    lng: float
    total_score: float
    distance_from_center_m: float


class VariantSummaryModel(BaseModel):
    strategy: StrategyTag
    description: str
    estimated_distance_km: float
    distance_score: float
    importance_score: float
    total_score: float


class RouteGenerationResponse(BaseModel):
    status: str = Field(..., description="accepted, exhausted or cancelled.")
    topology: Topology
    mode: TravelMode
    target_km: float
    start: PointModel
    end: Optional[PointModel] = None
    distance_km: Optional[float] = None
    duration_min: Optional[float] = None
    deviation_km: Optional[float] = None
    tolerance: Optional[float] = None
    attempts: List[AttemptModel] = Field(default_factory=list)
    waypoints: List[PointModel] = Field(default_factory=list)
    polyline: List[PointModel] = Field(default_factory=list)
    selected_pois: List[POIModel] = Field(default_factory=list)
    variant: Optional[VariantSummaryModel] = None
    fallback: bool = False
    warnings: List[str] = Field(default_factory=list)
    metadata: Dict[str, object] = Field(default_factory=dict)


class CategoryModel(BaseModel):
    id: str
    queries: List[str]


class CategoriesResponse(BaseModel):
    categories: List[CategoryModel]
