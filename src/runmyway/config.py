"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_POI_CATEGORIES: dict[str, tuple[str, ...]] = {
    "park": ("park", "public garden", "green space"),
    "forest": ("forest", "wood"),
    "monument": ("monument", "castle", "church", "cathedral"),
    "museum": ("museum", "gallery"),
    "sport": ("stadium", "gymnasium", "swimming pool", "sports ground"),
    "culture": ("theatre", "cinema", "opera", "cultural centre"),
    "water": ("lake", "river", "canal", "fountain"),
    "market": ("market", "covered market"),
    "viewpoint": ("viewpoint", "belvedere", "hill"),
}


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="RMW_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "RunMyWay Route Generator API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root logging level used by create_app().")
    data_root: Path = Field(default=Path("data"), description="Root directory for persisted route outputs.")

    osrm_base_url: Optional[str] = Field(
        default="https://router.project-osrm.org",
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_walking_profile: str = Field(default="foot", description="OSRM profile used for walking and running.")
    osrm_cycling_profile: str = Field(default="bike", description="OSRM profile used for cycling.")
    osrm_timeout_seconds: float = Field(default=15.0, gt=0.0)
    osrm_max_retries: int = Field(default=2, ge=0)
    osrm_backoff_seconds: float = Field(default=0.5, ge=0.0)

    nominatim_base_url: str = Field(default="https://nominatim.openstreetmap.org")
    nominatim_user_agent: str = Field(default="RunMyWay/1.0")
    nominatim_country_codes: Optional[str] = Field(
        default=None,
        description="Comma separated ISO country codes restricting place search (e.g. 'fr').",
    )
    nominatim_timeout_seconds: float = Field(default=5.0, gt=0.0)
    nominatim_max_retries: int = Field(default=1, ge=0)
    geocode_cache_size: int = Field(default=100, ge=1)
    geocode_cache_ttl_seconds: float = Field(default=600.0, gt=0.0)

    max_attempts: int = Field(default=8, ge=1)
    long_distance_threshold_km: float = Field(default=20.0, ge=0.0)
    long_distance_extra_attempts: int = Field(default=2, ge=0)
    attempt_delay_seconds: float = Field(default=0.03, ge=0.0)
    direct_acceptance_ratio: float = Field(
        default=0.20,
        ge=0.0,
        description="Point-to-point direct routes within this relative deviation are accepted without detours.",
    )
    loop_tolerance_brackets: tuple[tuple[float, float], ...] = Field(
        default=((8.0, 0.05), (20.0, 0.08), (50.0, 0.12)),
        description="(upper_km, tolerance) brackets for loop routes, upper bound inclusive.",
    )
    loop_tolerance_default: float = Field(default=0.15, ge=0.0)
    point_to_point_tolerance_brackets: tuple[tuple[float, float], ...] = Field(
        default=((20.0, 0.15), (50.0, 0.20)),
        description="(upper_km, tolerance) brackets for point-to-point detours, upper bound exclusive.",
    )
    point_to_point_tolerance_default: float = Field(default=0.25, ge=0.0)

    min_required_waypoints: int = Field(default=2, ge=1)
    variation_range: tuple[float, float] = Field(default=(0.6, 1.4))
    long_variation_range: tuple[float, float] = Field(default=(0.6, 1.6))
    detour_variation_range: tuple[float, float] = Field(default=(0.7, 1.3))

    poi_categories: dict[str, tuple[str, ...]] = Field(default_factory=lambda: dict(DEFAULT_POI_CATEGORIES))
    poi_results_per_query: int = Field(default=5, ge=1)
    poi_top_per_category: int = Field(default=3, ge=1)
    poi_min_score: float = Field(default=30.0, ge=0.0, le=100.0)
    poi_dedup_threshold_m: float = Field(default=100.0, ge=0.0)
    poi_max_parallel_requests: int = Field(default=4, ge=1)
    poi_search_timeout_seconds: float = Field(default=8.0, gt=0.0)
    poi_search_max_radius_m: float = Field(default=2000.0, gt=0.0)
    max_pois_per_variant: int = Field(default=5, ge=1)

    mode_speeds_kmh: dict[str, float] = Field(
        default_factory=lambda: {"walking": 4.5, "running": 8.5, "cycling": 18.0}
    )
    mode_distance_limits_km: dict[str, tuple[float, float]] = Field(
        default_factory=lambda: {
            "walking": (1.0, 15.0),
            "running": (1.0, 30.0),
            "cycling": (2.0, 80.0),
        }
    )

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=("http://localhost:5173", "http://127.0.0.1:5173"),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("loop_tolerance_brackets", "point_to_point_tolerance_brackets", mode="before")
    @classmethod
    def _parse_brackets_from_env(cls, value: Any) -> Any:
        """Accept brackets as a JSON array of [upper_km, tolerance] pairs."""
        if isinstance(value, str):
            parsed = json.loads(value)
            return tuple((float(upper), float(tolerance)) for upper, tolerance in parsed)
        return value

    @field_validator("variation_range", "long_variation_range", "detour_variation_range")
    @classmethod
    def _check_range(cls, value: tuple[float, float]) -> tuple[float, float]:
        low, high = value
        if low <= 0 or high < low:
            raise ValueError(f"Invalid variation range {value}: expected 0 < low <= high.")
        return value


settings = Settings()
