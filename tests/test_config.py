"""Tests for configuration system."""

import logging

import pytest
import yaml

from orbkit.config import (
    DescriptorConfig,
    DetectionConfig,
    MatchingConfig,
    OrientationConfig,
    PipelineConfig,
    RuntimeConfig,
)


class TestDetectionConfig:
    """Tests for DetectionConfig."""

    def test_defaults(self):
        """Test default values."""
        config = DetectionConfig()
        assert config.max_keypoints == 1000
        assert config.fast_threshold == 20
        assert config.arc_length == 9
        assert config.border == 16
        assert config.nms_radius == 1

    def test_custom_values(self):
        """Test custom values."""
        config = DetectionConfig(max_keypoints=50, fast_threshold=40, arc_length=12)
        assert config.max_keypoints == 50
        assert config.fast_threshold == 40
        assert config.arc_length == 12

    @pytest.mark.parametrize(
        "kwargs,match",
        [
            ({"max_keypoints": -1}, "non-negative"),
            ({"nms_radius": -1}, "non-negative"),
            ({"fast_threshold": 256}, "fast_threshold"),
            ({"fast_threshold": -1}, "fast_threshold"),
            ({"arc_length": 8}, "arc_length"),
            ({"arc_length": 13}, "arc_length"),
            ({"border": 2}, "border"),
        ],
    )
    def test_invalid_values(self, kwargs, match):
        """Test out-of-range values are rejected."""
        with pytest.raises(ValueError, match=match):
            DetectionConfig(**kwargs)


class TestOrientationConfig:
    """Tests for OrientationConfig."""

    def test_defaults(self):
        """Test default values."""
        assert OrientationConfig().patch_radius == 15

    def test_invalid_patch_radius(self):
        """Test a non-positive radius is rejected."""
        with pytest.raises(ValueError, match="patch_radius"):
            OrientationConfig(patch_radius=0)


class TestDescriptorConfig:
    """Tests for DescriptorConfig."""

    def test_defaults(self):
        """Test default values."""
        config = DescriptorConfig()
        assert config.pattern_size == 256
        assert config.patch_radius == 15
        assert config.seed == 45551

    @pytest.mark.parametrize("size", [0, 100, -8])
    def test_invalid_pattern_size(self, size):
        """Test sizes that do not pack into bytes are rejected."""
        with pytest.raises(ValueError, match="multiple of 8"):
            DescriptorConfig(pattern_size=size)


class TestMatchingConfig:
    """Tests for MatchingConfig."""

    def test_defaults(self):
        """Test default values."""
        config = MatchingConfig()
        assert config.max_distance == 64
        assert config.cross_check is True
        assert config.chunk_size == 1024

    def test_invalid_values(self):
        """Test negative thresholds and empty chunks are rejected."""
        with pytest.raises(ValueError, match="max_distance"):
            MatchingConfig(max_distance=-1)
        with pytest.raises(ValueError, match="chunk_size"):
            MatchingConfig(chunk_size=0)


class TestRuntimeConfig:
    """Tests for RuntimeConfig."""

    def test_defaults(self):
        """Test default values."""
        config = RuntimeConfig()
        assert config.device == "cpu"
        assert config.quiet is False
        assert config.line_color == (0, 255, 0)

    def test_invalid_device(self):
        """Test unknown devices are rejected."""
        with pytest.raises(ValueError):
            RuntimeConfig(device="tpu")

    def test_invalid_line_color(self):
        """Test channels outside [0, 255] are rejected."""
        with pytest.raises(ValueError, match="line_color"):
            RuntimeConfig(line_color=(0, 300, 0))


class TestPipelineConfig:
    """Tests for PipelineConfig."""

    def test_defaults(self):
        """Test every section is populated with defaults."""
        config = PipelineConfig()
        assert config.detection == DetectionConfig()
        assert config.orientation == OrientationConfig()
        assert config.description == DescriptorConfig()
        assert config.matching == MatchingConfig()
        assert config.runtime == RuntimeConfig()

    def test_nested_dict(self):
        """Test sections can be given as plain dicts."""
        config = PipelineConfig(detection={"max_keypoints": 10}, matching={"cross_check": False})
        assert config.detection.max_keypoints == 10
        assert config.matching.cross_check is False

    def test_orientation_patch_exceeding_border_raises(self):
        """Test the orientation patch must fit inside the detection border."""
        with pytest.raises(ValueError, match="must not exceed detection.border"):
            PipelineConfig(detection={"border": 10}, orientation={"patch_radius": 11})

    def test_descriptor_radius_near_border_warns(self, caplog):
        """Test a pattern reaching the border logs a clamping warning."""
        with caplog.at_level(logging.WARNING, logger="orbkit.config"):
            PipelineConfig(detection={"border": 15}, orientation={"patch_radius": 15})
        assert "will be clamped" in caplog.text

    def test_default_config_does_not_warn(self, caplog):
        """Test the defaults are self-consistent."""
        with caplog.at_level(logging.WARNING, logger="orbkit.config"):
            PipelineConfig()
        assert caplog.text == ""

    def test_unknown_keys_warn(self, caplog):
        """Test unknown keys are kept but reported."""
        with caplog.at_level(logging.WARNING, logger="orbkit.config"):
            config = PipelineConfig(detection={"fast_treshold": 5}, extra_section={})
        assert "fast_treshold" in caplog.text
        assert "extra_section" in caplog.text
        assert config.detection.fast_threshold == 20


class TestYamlRoundTrip:
    """Tests for YAML loading and saving."""

    def test_round_trip_full_config(self, tmp_path):
        """Test save then load gives an equal config."""
        config = PipelineConfig(
            detection={"max_keypoints": 500, "fast_threshold": 30, "arc_length": 10},
            orientation={"patch_radius": 12},
            description={"pattern_size": 512, "seed": 7},
            matching={"max_distance": 40, "cross_check": False},
            runtime={"quiet": True, "line_color": (255, 0, 0)},
        )
        path = tmp_path / "config.yaml"
        config.to_yaml(path)

        loaded = PipelineConfig.from_yaml(path)
        assert loaded == config
        assert loaded.runtime.line_color == (255, 0, 0)

    def test_yaml_output_is_human_readable(self, tmp_path):
        """Test every section and default is written out."""
        path = tmp_path / "nested" / "config.yaml"
        PipelineConfig().to_yaml(path)

        data = yaml.safe_load(path.read_text())
        assert list(data) == ["detection", "orientation", "description", "matching", "runtime"]
        assert data["detection"]["max_keypoints"] == 1000
        assert data["matching"]["max_distance"] == 64
        assert data["runtime"]["line_color"] == [0, 255, 0]

    def test_partial_yaml_merges_over_defaults(self, tmp_path, caplog):
        """Test missing sections and fields fall back to defaults."""
        path = tmp_path / "partial.yaml"
        path.write_text("matching:\n  max_distance: 32\n")

        with caplog.at_level(logging.INFO, logger="orbkit.config"):
            config = PipelineConfig.from_yaml(path)

        assert config.matching.max_distance == 32
        assert config.matching.cross_check is True
        assert config.detection == DetectionConfig()
        assert "Using default: detection" in caplog.text
        assert "Using default: matching" not in caplog.text

    def test_empty_yaml_loads_as_defaults(self, tmp_path):
        """Test an empty file gives the default config."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert PipelineConfig.from_yaml(path) == PipelineConfig()

    def test_non_mapping_yaml_raises(self, tmp_path):
        """Test a top-level list is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="must be a mapping"):
            PipelineConfig.from_yaml(path)

    def test_validation_errors_are_collected(self, tmp_path):
        """Test all invalid fields are reported with YAML paths."""
        path = tmp_path / "bad.yaml"
        path.write_text(
            "detection:\n  arc_length: 20\nmatching:\n  max_distance: -5\n"
        )
        with pytest.raises(ValueError, match="Configuration validation failed") as exc:
            PipelineConfig.from_yaml(path)
        message = str(exc.value)
        assert "detection.arc_length" in message
        assert "matching.max_distance" in message

    def test_missing_file_raises(self, tmp_path):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            PipelineConfig.from_yaml(tmp_path / "missing.yaml")


class TestImports:
    """Tests for config exports."""

    def test_import_from_package(self):
        """Test configs are re-exported at package level."""
        import orbkit

        assert orbkit.PipelineConfig is PipelineConfig
        assert orbkit.MatchingConfig is MatchingConfig
