"""wallmeasure.config

Settings loaded from environment variables (and optional `.env` file).

Prefer `get_settings()` for dependency injection and testability; the core
algorithms take explicit parameters and never read settings themselves.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from wallmeasure.core.models import DetectorParams


class Settings(BaseSettings):
    """Wall measurement service settings."""

    # ===== Calibration =====
    # Edge of the printed pattern's outer quad: 6.5 inches.
    REFERENCE_SIZE_FT: float = Field(default=6.5 / 12, gt=0.0, le=100.0)
    PROJECTION_EPS: float = Field(default=1e-4, gt=0.0, le=1.0)

    # ===== Detection =====
    ADAPTIVE_BLOCK_SIZE: int = Field(default=11, ge=3, le=101)
    ADAPTIVE_C: float = Field(default=2.0, ge=0.0, le=255.0)
    APPROX_EPSILON_RATIO: float = Field(default=0.02, gt=0.0, le=0.5)
    MIN_QUAD_AREA_PX: float = Field(default=100.0, ge=0.0)
    MAX_BORDER_COVERAGE: float = Field(default=0.95, gt=0.0, le=1.0)
    MIN_ASPECT_RATIO: float = Field(default=0.5, gt=0.0, le=1.0)
    MAX_ASPECT_RATIO: float = Field(default=2.0, ge=1.0, le=100.0)
    SUBPIX_HALF_WINDOW: int = Field(default=5, ge=1, le=50)
    SUBPIX_MAX_ITER: int = Field(default=40, ge=1, le=1000)
    SUBPIX_EPS: float = Field(default=0.001, gt=0.0, le=1.0)
    GROUP_MAX_AREA_RATIO: float = Field(default=3.0, gt=1.0, le=100.0)

    # ===== API =====
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8010, ge=1, le=65535)
    API_TITLE: str = Field(default="Wall Measurement Service")
    API_VERSION: str = Field(default="1.0.0")
    API_PREFIX: str = Field(default="")
    LOG_LEVEL: str = Field(default="INFO")
    MAX_UPLOAD_MB: float = Field(default=25.0, gt=0.0, le=512.0)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("ADAPTIVE_BLOCK_SIZE")
    @classmethod
    def _block_size_is_odd(cls, v: int) -> int:
        if v % 2 == 0:
            raise ValueError("ADAPTIVE_BLOCK_SIZE must be odd")
        return v

    @property
    def max_upload_bytes(self) -> int:
        return int(self.MAX_UPLOAD_MB * 1024 * 1024)

    def detector_params(self) -> DetectorParams:
        return DetectorParams(
            adaptive_block_size=self.ADAPTIVE_BLOCK_SIZE,
            adaptive_c=self.ADAPTIVE_C,
            approx_epsilon_ratio=self.APPROX_EPSILON_RATIO,
            min_quad_area=self.MIN_QUAD_AREA_PX,
            max_border_coverage=self.MAX_BORDER_COVERAGE,
            min_aspect_ratio=self.MIN_ASPECT_RATIO,
            max_aspect_ratio=self.MAX_ASPECT_RATIO,
            subpix_half_window=self.SUBPIX_HALF_WINDOW,
            subpix_max_iter=self.SUBPIX_MAX_ITER,
            subpix_eps=self.SUBPIX_EPS,
            group_max_area_ratio=self.GROUP_MAX_AREA_RATIO,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


settings = get_settings()
