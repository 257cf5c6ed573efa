"""
Runtime configuration.

Defaults for the ingestion options and every scoring weight / placement threshold
live here so they can be tuned per deployment (env vars prefixed RESUME_INTAKE_,
or a .env file) without touching extraction logic.
"""

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from resume_intake.core.schemas import ParsingOptions


class ScoringWeights(BaseModel):
    """Weights of the composite confidence. Normalised at use, so they need not sum to 1."""
    classification: float = Field(default=0.25, ge=0.0)
    extraction: float = Field(default=0.35, ge=0.0)
    validation: float = Field(default=0.25, ge=0.0)
    completeness: float = Field(default=0.15, ge=0.0)


class PlacementThresholds(BaseModel):
    auto_placement: float = Field(default=0.8, ge=0.0, le=1.0)
    manual_review: float = Field(default=0.5, ge=0.0, le=1.0)
    acceptable_quality: float = Field(default=0.6, ge=0.0, le=1.0)
    high_confidence: float = Field(default=0.85, ge=0.0, le=1.0)
    low_confidence: float = Field(default=0.3, ge=0.0, le=1.0)
    max_uncertain_for_review: int = Field(default=2, ge=0, description="Uncertain fields tolerated on the auto-place-with-review path")
    max_uncertain_before_manual: int = Field(default=3, ge=0, description="More than this many uncertain fields recommends manual review")


class ScoringConfig(BaseModel):
    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    thresholds: PlacementThresholds = Field(default_factory=PlacementThresholds)
    completeness_bonus: float = Field(default=0.1, ge=0.0)
    completeness_bonus_floor: float = Field(default=0.7, ge=0.0, le=1.0)
    validation_detail_floor: float = Field(default=0.7, ge=0.0, le=1.0)


class Settings(BaseSettings):
    timeout_ms: int = 60_000
    max_file_size_mb: int = 50
    enable_ocr: bool = True
    ocr_language: str = "eng"
    strict_validation: bool = False
    retry_attempts: int = 2

    pdf_retry_base_delay_ms: int = 1000
    default_retry_base_delay_ms: int = 500
    ocr_render_dpi: int = 300

    log_buffer_size: int = 1000
    extraction_workers: int = 4

    scoring: ScoringConfig = Field(default_factory=ScoringConfig)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "RESUME_INTAKE_",
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }

    def default_options(self) -> ParsingOptions:
        return ParsingOptions(
            timeout_ms=self.timeout_ms,
            max_file_size_bytes=self.max_file_size_mb * 1024 * 1024,
            enable_ocr=self.enable_ocr,
            ocr_language=self.ocr_language,
            strict_validation=self.strict_validation,
            retry_attempts=self.retry_attempts,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
