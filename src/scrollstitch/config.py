"""
scrollstitch Configuration
==========================

This module handles configuration loading for the scroll-capture engine.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    SCROLLSTITCH_MATCH_THRESHOLD        -> overlap.match_threshold
    SCROLLSTITCH_MIN_OVERLAP            -> overlap.min_overlap
    SCROLLSTITCH_SMALL_OVERLAP_DUPLICATE -> overlap.treat_small_overlap_as_duplicate
    SCROLLSTITCH_POLL_INTERVAL_MS       -> detector.poll_interval_ms
    SCROLLSTITCH_COOLDOWN_MS            -> detector.cooldown_ms
    SCROLLSTITCH_CHANGE_THRESHOLD       -> detector.change_threshold
    SCROLLSTITCH_CAPTURE_ON_FINISH      -> session.capture_on_finish
    SCROLLSTITCH_PORT                   -> server.port
    SCROLLSTITCH_LOG_LEVEL              -> logging.level
    PORT                                -> server.port (Cloud Run)

Example:
    from scrollstitch.config import settings

    print(settings.overlap.match_threshold)
    print(settings.detector.cooldown_ms)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class OverlapConfig(BaseModel):
    """Heuristic constants for the overlap search."""

    # Whole-frame duplicate pre-check
    duplicate_sample_step: int = Field(
        default=8,
        ge=1,
        description="Row and column step of the duplicate pre-check grid",
    )
    duplicate_tolerance: int = Field(
        default=25,
        ge=0,
        le=255,
        description="Per-channel tolerance for the duplicate pre-check",
    )
    duplicate_threshold: float = Field(
        default=0.90,
        gt=0,
        le=1.0,
        description="Match fraction above which the frames are duplicates",
    )

    # Coarse search
    search_range_fraction: float = Field(
        default=0.9,
        gt=0,
        le=1.0,
        description="Largest candidate overlap as a fraction of min(height)",
    )
    min_overlap: int = Field(default=10, ge=1, description="Smallest candidate overlap")
    coarse_step: int = Field(default=5, ge=1, description="Coarse candidate step (rows)")
    row_step: int = Field(default=2, ge=1, description="Sampled row step")
    col_step: int = Field(default=4, ge=1, description="Sampled column step")
    pixel_tolerance: int = Field(
        default=25,
        ge=0,
        le=255,
        description="Per-channel tolerance for band comparison",
    )
    match_threshold: float = Field(
        default=0.65,
        gt=0,
        le=1.0,
        description="Similarity a candidate must exceed to count as a match",
    )

    # Fine refinement
    refine_radius: int = Field(default=4, ge=0, description="Refinement half-window (rows)")

    # Post-filters
    near_full_similarity: float = Field(
        default=0.70,
        ge=0,
        le=1.0,
        description="Similarity for a ~full-height overlap to become a duplicate",
    )
    suspicious_overlap_rows: int = Field(
        default=200,
        ge=0,
        description="Overlaps below this are checked by the small-overlap policy",
    )
    suspicious_similarity: float = Field(
        default=0.90,
        ge=0,
        le=1.0,
        description="Similarity above which a small overlap is suspicious",
    )
    treat_small_overlap_as_duplicate: bool = Field(
        default=True,
        description="Apply the suspicious-small-overlap duplicate override",
    )


class DetectorConfig(BaseModel):
    """ScrollDetector cadence and sensitivity."""

    poll_interval_ms: int = Field(
        default=100,
        gt=0,
        description="Interval between probe captures",
    )
    cooldown_ms: int = Field(
        default=200,
        ge=0,
        description="Minimum time between two scroll signals",
    )
    change_threshold: float = Field(
        default=0.03,
        ge=0,
        le=1.0,
        description="Fraction of sampled pixels that must change",
    )
    channel_tolerance: int = Field(
        default=10,
        ge=0,
        le=255,
        description="Per-channel difference that marks a pixel as changed",
    )
    sample_stride: int = Field(
        default=4,
        ge=1,
        description="Compare every Nth pixel of the buffer",
    )

    @property
    def poll_interval_sec(self) -> float:
        return self.poll_interval_ms / 1000.0

    @property
    def cooldown_sec(self) -> float:
        return self.cooldown_ms / 1000.0


class SessionConfig(BaseModel):
    """SessionController behaviour."""

    capture_on_finish: bool = Field(
        default=True,
        description="Capture one last frame when the user presses done",
    )


class ObservabilityConfig(BaseModel):
    """Seam visualization for stitched output."""

    enable_seams: bool = Field(
        default=False,
        description="Render seam-annotated debug images",
    )
    seam_color: str = Field(default="#ff3b30", description="Seam line colour (hex)")
    seam_thickness: int = Field(default=2, ge=1, le=16, description="Seam line thickness")


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8011, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for scrollstitch.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    overlap: OverlapConfig = Field(default_factory=OverlapConfig)
    detector: DetectorConfig = Field(default_factory=DetectorConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Overlap heuristics
    if env_match := os.environ.get("SCROLLSTITCH_MATCH_THRESHOLD"):
        config_data.setdefault("overlap", {})["match_threshold"] = float(env_match)
    if env_min := os.environ.get("SCROLLSTITCH_MIN_OVERLAP"):
        config_data.setdefault("overlap", {})["min_overlap"] = int(env_min)
    if env_small := os.environ.get("SCROLLSTITCH_SMALL_OVERLAP_DUPLICATE"):
        config_data.setdefault("overlap", {})["treat_small_overlap_as_duplicate"] = _env_flag(env_small)

    # Detector cadence
    if env_poll := os.environ.get("SCROLLSTITCH_POLL_INTERVAL_MS"):
        config_data.setdefault("detector", {})["poll_interval_ms"] = int(env_poll)
    if env_cool := os.environ.get("SCROLLSTITCH_COOLDOWN_MS"):
        config_data.setdefault("detector", {})["cooldown_ms"] = int(env_cool)
    if env_change := os.environ.get("SCROLLSTITCH_CHANGE_THRESHOLD"):
        config_data.setdefault("detector", {})["change_threshold"] = float(env_change)

    # Session
    if env_finish := os.environ.get("SCROLLSTITCH_CAPTURE_ON_FINISH"):
        config_data.setdefault("session", {})["capture_on_finish"] = _env_flag(env_finish)

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("SCROLLSTITCH_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("SCROLLSTITCH_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import. Entry points call
# setup_logging(settings); library code only reads it.
settings = load_config()
