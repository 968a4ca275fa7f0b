"""Option validation and YAML config loading.

Provides centralized validation using pydantic:
    - ConvertOptions: the immutable, fully-resolved options of one conversion
      (input/output paths, scale, stroke width), handed to the vectorizer
    - Config schema (raster2vector.v1.yaml): default scale/stroke width and
      logging settings shared across runs

Everything is validated before any image is decoded, so a bad option never
leaves a partial output behind.

Units:
    - scale: output units per source pixel (> 0)
    - stroke_width: unit-cell units (>= 0; 0 draws no visible outline)

Usage:
    from raster2vector.utils import validators

    cfg = validators.load_convert_config("configs/raster2vector.v1.yaml")
    opts = validators.build_convert_options("sprite.png", scale=4, config=cfg)
    opts.output_file  # → Path("sprite.svg")
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

DEFAULT_SCALE = 10.0
DEFAULT_STROKE_WIDTH = 0.01
OUTPUT_SUFFIX = ".svg"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Invalid options or config file (reported before any I/O)."""


# ============================================================================
# CONVERSION OPTIONS
# ============================================================================

class ConvertOptions(BaseModel):
    """Resolved options for a single raster → SVG conversion.

    Frozen: built once at the edge (CLI or caller) and passed down explicitly.
    ``output_file`` defaults to ``input_file`` with its extension replaced by
    ``.svg``.
    """
    model_config = ConfigDict(frozen=True)

    input_file: Path = Field(..., description="Raster image to convert")
    output_file: Path = Field(..., description="SVG file to write")
    scale: float = Field(
        DEFAULT_SCALE, gt=0.0, allow_inf_nan=False,
        description="Output units per source pixel"
    )
    stroke_width: float = Field(
        DEFAULT_STROKE_WIDTH, ge=0.0, allow_inf_nan=False,
        description="Outline width of every pixel polygon"
    )

    @model_validator(mode='before')
    @classmethod
    def derive_output_file(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get('output_file') in (None, ""):
            input_file = data.get('input_file')
            if input_file not in (None, ""):
                data = {**data, 'output_file': Path(input_file).with_suffix(OUTPUT_SUFFIX)}
        return data

    @field_validator('input_file', 'output_file', mode='before')
    @classmethod
    def validate_path(cls, v: Any) -> Any:
        if v is None or str(v).strip() == "":
            raise ValueError("path must be non-empty")
        return v


# ============================================================================
# CONFIG SCHEMA V1
# ============================================================================

class LogRotateV1(BaseModel):
    """Log file rotation (see logging_config.setup_logging)."""
    model_config = ConfigDict(extra='forbid')

    mode: str = Field("size", description="'size' or 'time'")
    max_bytes: int = Field(10_000_000, gt=0)
    backup_count: int = Field(3, ge=0)
    when: str = Field("D", description="TimedRotatingFileHandler 'when'")
    interval: int = Field(1, ge=1)

    @field_validator('mode')
    @classmethod
    def validate_mode(cls, v: str) -> str:
        if v not in ("size", "time"):
            raise ValueError(f"Rotation mode must be 'size' or 'time', got '{v}'")
        return v


class LoggingConfigV1(BaseModel):
    """Logging section of the config file."""
    model_config = ConfigDict(extra='forbid')

    log_level: str = Field("INFO", description="Root log level")
    log_file: Optional[str] = Field(None, description="Optional log file path")
    log_json: bool = Field(False, description="JSON lines in the log file")
    color: bool = Field(True, description="ANSI colors on a TTY")
    rotate: Optional[LogRotateV1] = None

    @field_validator('log_level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got '{v}'")
        return level

    def setup_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for logging_config.setup_logging()."""
        return {
            'log_level': self.log_level,
            'log_file': self.log_file,
            'json': self.log_json,
            'color': self.color,
            'rotate': self.rotate.model_dump() if self.rotate else None,
        }


class ConvertConfigV1(BaseModel):
    """Config file schema v1 (raster2vector.v1.yaml).

    Every key is optional; CLI flags override what is set here.
    """
    model_config = ConfigDict(populate_by_name=True, extra='forbid')

    schema_version: str = Field("raster2vector.v1", alias="schema", description="Schema version")
    scale: Optional[float] = Field(None, gt=0.0, allow_inf_nan=False)
    stroke_width: Optional[float] = Field(None, ge=0.0, allow_inf_nan=False)
    logging: LoggingConfigV1 = Field(default_factory=LoggingConfigV1)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "raster2vector.v1":
            raise ValueError(f"Expected schema 'raster2vector.v1', got '{v}'")
        return v


# ============================================================================
# PUBLIC API
# ============================================================================

def load_convert_config(path: Union[str, Path]) -> ConvertConfigV1:
    """Load and validate a converter config from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to a raster2vector.v1 YAML file

    Returns
    -------
    ConvertConfigV1
        Validated config

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ConfigError
        If the YAML is malformed or fails validation
    """
    import yaml

    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = fs.load_yaml(path)
    except yaml.YAMLError as e:
        raise ConfigError(str(e)) from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(data).__name__}")

    try:
        return ConvertConfigV1(**data)
    except ValidationError as e:
        raise ConfigError(f"Config validation failed at {path}: {e}") from e


def build_convert_options(
    input_file: Union[str, Path, None],
    output_file: Union[str, Path, None] = None,
    scale: Optional[float] = None,
    stroke_width: Optional[float] = None,
    config: Optional[ConvertConfigV1] = None,
) -> ConvertOptions:
    """Resolve conversion options (explicit value > config file > default).

    Parameters
    ----------
    input_file : Union[str, Path, None]
        Raster image path (required)
    output_file : Union[str, Path, None]
        SVG path; derived from input_file when None
    scale : Optional[float]
        Output units per pixel; must be > 0
    stroke_width : Optional[float]
        Polygon outline width; must be >= 0
    config : Optional[ConvertConfigV1]
        Loaded config file supplying fallbacks

    Returns
    -------
    ConvertOptions
        Frozen, validated options

    Raises
    ------
    ConfigError
        With pydantic's field-level message when validation fails
    """
    if scale is None and config is not None:
        scale = config.scale
    if stroke_width is None and config is not None:
        stroke_width = config.stroke_width

    data: Dict[str, Any] = {'input_file': input_file, 'output_file': output_file}
    if scale is not None:
        data['scale'] = scale
    if stroke_width is not None:
        data['stroke_width'] = stroke_width

    try:
        return ConvertOptions(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid options: {e}") from e
