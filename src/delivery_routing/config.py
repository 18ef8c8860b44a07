"""Application configuration and settings management."""

from typing import Annotated, Any, Literal

import json
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="DRE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Delivery Route Engine API"
    api_prefix: str = "/api"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    frontend_allowed_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Geometry and travel model
    earth_radius_miles: float = Field(default=3959.0, gt=0.0)
    average_speed_mph: float = Field(
        default=25.0,
        gt=0.0,
        description="Assumed average travel speed used to turn leg distance into minutes.",
    )
    traffic_range_avoid: Annotated[tuple[float, float], NoDecode] = Field(
        default=(0.85, 1.15),
        description="Traffic factor sampling range when the driver avoids traffic.",
    )
    traffic_range_default: Annotated[tuple[float, float], NoDecode] = Field(
        default=(0.90, 1.40),
        description="Traffic factor sampling range otherwise.",
    )

    # Scoring
    time_window_penalty: float = Field(default=1000.0, ge=0.0)
    high_priority_multiplier: float = Field(default=0.8, gt=0.0)
    medium_priority_multiplier: float = Field(default=1.0, gt=0.0)
    low_priority_multiplier: float = Field(default=1.2, gt=0.0)

    # Cost model
    fuel_price_per_gallon: float = Field(default=3.50, ge=0.0)
    efficiency_weight: float = Field(default=0.5, ge=0.0)

    # Constraint defaults for drivers that do not send their own
    default_max_stops: int = Field(default=8, ge=2)
    default_max_duration_minutes: int = Field(default=480, ge=1)
    default_max_distance_miles: float = Field(default=100.0, gt=0.0)
    default_fuel_efficiency_mpg: float = Field(default=25.0, gt=0.0)
    default_vehicle_type: Literal["car", "van", "truck"] = Field(default="car")

    out_of_order_policy: Literal["allow", "reject"] = Field(
        default="allow",
        description="Whether a stop other than the current one may be completed or failed.",
    )

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
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

    @field_validator("traffic_range_avoid", "traffic_range_default", mode="before")
    @classmethod
    def _parse_float_pair_from_env(cls, value: Any) -> tuple[float, float]:
        """Parse a (low, high) pair from a JSON array or a comma-separated string."""
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except (json.JSONDecodeError, TypeError):
                parsed = [item.strip() for item in value.split(",") if item.strip()]
            value = parsed
        if isinstance(value, (list, tuple)):
            if len(value) != 2:
                raise ValueError(f"Expected two values for a traffic range, got {len(value)}")
            return (float(value[0]), float(value[1]))
        raise ValueError(f"Unsupported traffic range value: {value!r}")

    @model_validator(mode="after")
    def _check_traffic_ranges(self) -> "Settings":
        for name in ("traffic_range_avoid", "traffic_range_default"):
            low, high = getattr(self, name)
            if low <= 0 or high < low:
                raise ValueError(f"{name} must satisfy 0 < low <= high, got ({low}, {high})")
        return self


settings = Settings()
