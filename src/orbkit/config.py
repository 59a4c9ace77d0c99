"""Configuration management for the orbkit detection and matching pipeline."""

import logging
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)

# Mirrors orbkit.features.detection; kept here so config has no numpy import
MIN_ARC_LENGTH = 9
MAX_ARC_LENGTH = 12
RING_RADIUS = 3

SECTIONS = ["detection", "orientation", "description", "matching", "runtime"]


class _Section(BaseModel):
    """Base class for config sections: unknown keys are kept but reported."""

    model_config = ConfigDict(extra="allow")

    @model_validator(mode="after")
    def warn_extra_fields(self):
        """Warn about unknown configuration keys."""
        if self.__pydantic_extra__:
            logger.warning(
                "Unknown config keys in %s (ignored): %s",
                type(self).__name__,
                list(self.__pydantic_extra__.keys()),
            )
        return self


class DetectionConfig(_Section):
    """Configuration for corner detection.

    Attributes:
        max_keypoints: Maximum number of keypoints kept per image.
        fast_threshold: Brightness difference a ring pixel must exceed.
        arc_length: Minimum contiguous arc of the 16-pixel ring (9-12).
        border: Margin in pixels excluded from detection.
        nms_radius: Half-size of the non-maximum suppression window.
    """

    max_keypoints: int = 1000
    fast_threshold: int = 20
    arc_length: int = 9
    border: int = 16
    nms_radius: int = 1

    @field_validator("max_keypoints", "nms_radius")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Validate that the value is not negative."""
        if v < 0:
            raise ValueError(f"must be non-negative, got {v}")
        return v

    @field_validator("fast_threshold")
    @classmethod
    def validate_threshold(cls, v: int) -> int:
        """Validate that the threshold is a valid 8-bit difference."""
        if not 0 <= v <= 255:
            raise ValueError(f"fast_threshold must be in [0, 255], got {v}")
        return v

    @field_validator("arc_length")
    @classmethod
    def validate_arc_length(cls, v: int) -> int:
        """Validate the arc length range."""
        if not MIN_ARC_LENGTH <= v <= MAX_ARC_LENGTH:
            raise ValueError(
                f"arc_length must be in [{MIN_ARC_LENGTH}, {MAX_ARC_LENGTH}], got {v}"
            )
        return v

    @field_validator("border")
    @classmethod
    def validate_border(cls, v: int) -> int:
        """Validate that the border leaves room for the detection ring."""
        if v < RING_RADIUS:
            raise ValueError(f"border must be at least {RING_RADIUS}, got {v}")
        return v


class OrientationConfig(_Section):
    """Configuration for orientation estimation.

    Attributes:
        patch_radius: Radius of the circular intensity-centroid patch.
    """

    patch_radius: int = 15

    @field_validator("patch_radius")
    @classmethod
    def validate_patch_radius(cls, v: int) -> int:
        """Validate that patch_radius is positive."""
        if v < 1:
            raise ValueError(f"patch_radius must be positive, got {v}")
        return v


class DescriptorConfig(_Section):
    """Configuration for the sampling pattern and descriptor extraction.

    Changing any of these values produces descriptors that cannot be
    compared with descriptors computed under the defaults.

    Attributes:
        pattern_size: Number of point pairs, i.e. descriptor bits.
        patch_radius: Radius every pattern offset lies within.
        seed: Seed for the deterministic pattern generator.
    """

    pattern_size: int = 256
    patch_radius: int = 15
    seed: int = 45551

    @field_validator("pattern_size")
    @classmethod
    def validate_pattern_size(cls, v: int) -> int:
        """Validate that pattern_size packs into whole bytes."""
        if v <= 0 or v % 8 != 0:
            raise ValueError(f"pattern_size must be a positive multiple of 8, got {v}")
        return v

    @field_validator("patch_radius")
    @classmethod
    def validate_patch_radius(cls, v: int) -> int:
        """Validate that patch_radius is positive."""
        if v < 1:
            raise ValueError(f"patch_radius must be positive, got {v}")
        return v


class MatchingConfig(_Section):
    """Configuration for brute-force Hamming matching.

    Attributes:
        max_distance: Largest accepted Hamming distance (inclusive).
        cross_check: Keep only mutual nearest neighbours.
        chunk_size: Query rows per distance-matrix chunk.
    """

    max_distance: int = 64
    cross_check: bool = True
    chunk_size: int = 1024

    @field_validator("max_distance")
    @classmethod
    def validate_max_distance(cls, v: int) -> int:
        """Validate that max_distance is non-negative."""
        if v < 0:
            raise ValueError(f"max_distance must be non-negative, got {v}")
        return v

    @field_validator("chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        """Validate that chunk_size is positive."""
        if v < 1:
            raise ValueError(f"chunk_size must be positive, got {v}")
        return v


class RuntimeConfig(_Section):
    """Configuration for runtime settings.

    Attributes:
        device: PyTorch device string used for matching.
        quiet: Suppress progress output.
        line_color: BGR color of match lines in composites.
    """

    device: Literal["cpu", "cuda"] = "cpu"
    quiet: bool = False
    line_color: tuple[int, int, int] = (0, 255, 0)

    @field_validator("line_color")
    @classmethod
    def validate_line_color(cls, v: tuple[int, int, int]) -> tuple[int, int, int]:
        """Validate that every channel is a valid 8-bit value."""
        if any(not 0 <= c <= 255 for c in v):
            raise ValueError(f"line_color channels must be in [0, 255], got {v}")
        return v


class PipelineConfig(BaseModel):
    """Top-level configuration for detection, description, and matching.

    Attributes:
        detection: Corner detection configuration.
        orientation: Orientation estimation configuration.
        description: Sampling pattern and descriptor configuration.
        matching: Matching configuration.
        runtime: Runtime configuration.
    """

    model_config = ConfigDict(extra="allow")

    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    orientation: OrientationConfig = Field(default_factory=OrientationConfig)
    description: DescriptorConfig = Field(default_factory=DescriptorConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    @model_validator(mode="after")
    def check_cross_stage_constraints(self) -> "PipelineConfig":
        """Validate cross-stage constraints and warn about extra fields."""
        # The orientation patch must stay inside the image for every keypoint
        if self.orientation.patch_radius > self.detection.border:
            raise ValueError(
                f"orientation.patch_radius ({self.orientation.patch_radius}) must not "
                f"exceed detection.border ({self.detection.border})"
            )

        # Rotated pattern offsets can round up by one pixel
        if self.description.patch_radius + 1 > self.detection.border:
            logger.warning(
                "description.patch_radius=%d with detection.border=%d: samples near "
                "the image edge will be clamped",
                self.description.patch_radius,
                self.detection.border,
            )

        if self.__pydantic_extra__:
            logger.warning(
                "Unknown config keys in PipelineConfig (ignored): %s",
                list(self.__pydantic_extra__.keys()),
            )

        return self

    @classmethod
    def from_yaml(cls, path: str | Path) -> "PipelineConfig":
        """Load configuration from a YAML file.

        Missing fields use their default values.

        Args:
            path: Path to YAML configuration file.

        Returns:
            Loaded configuration with defaults filled in.

        Raises:
            FileNotFoundError: If the file does not exist.
            yaml.YAMLError: If the file is not valid YAML.
            ValueError: If validation fails (with all errors collected).
        """
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f)

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(
                f"Configuration must be a mapping, got {type(data).__name__}"
            )

        cls._log_default_sections(data)

        try:
            config = cls.model_validate(data)
        except ValidationError as e:
            formatted_errors = format_validation_errors(e)
            raise ValueError(
                f"Configuration validation failed:\n{formatted_errors}"
            ) from None

        return config

    @staticmethod
    def _log_default_sections(data: dict[str, Any]) -> None:
        """Log INFO messages about sections using defaults.

        Args:
            data: Configuration dictionary.
        """
        for section in SECTIONS:
            if section not in data:
                logger.info("Using default: %s (all defaults)", section)

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file.

        All fields including defaults are written for explicitness.

        Args:
            path: Path to output YAML file.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(mode="json")

        with open(path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)


def format_validation_errors(error: ValidationError) -> str:
    """Format Pydantic validation errors with YAML-style paths.

    Args:
        error: Pydantic ValidationError.

    Returns:
        Formatted error string with YAML paths and messages.
    """
    lines = []
    for err in error.errors():
        loc = err["loc"]
        path_parts = []
        for part in loc:
            if isinstance(part, int) and path_parts:
                # Array index
                path_parts[-1] = f"{path_parts[-1]}[{part}]"
            else:
                path_parts.append(str(part))

        path = ".".join(path_parts)
        msg = err["msg"]
        lines.append(f"  {path}: {msg}")

    return "\n".join(lines)
