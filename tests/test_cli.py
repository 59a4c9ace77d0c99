"""Tests for CLI match, detect, and init commands."""

from pathlib import Path
from unittest.mock import patch

import cv2
import pytest
import yaml

from orbkit.cli import detect_command, init_config, main, match_command
from orbkit.config import PipelineConfig
from orbkit.features import load_features
from orbkit.pipeline import PairResult


@pytest.fixture
def image_pair(tmp_path: Path, block_image, make_block_image) -> tuple[Path, Path]:
    """Write two textured images to disk.

    Args:
        tmp_path: Pytest temporary directory fixture.

    Returns:
        Paths of the two PNG files.
    """
    first = tmp_path / "first.png"
    second = tmp_path / "second.png"
    cv2.imwrite(str(first), block_image)
    cv2.imwrite(str(second), make_block_image(seed=1))
    return first, second


def _empty_result() -> PairResult:
    return PairResult(
        descriptors_a=[],
        descriptors_b=[],
        matches=[],
        extraction_seconds=0.25,
        matching_seconds=0.05,
    )


def test_init_writes_defaults(tmp_path: Path, capsys):
    """Test init writes a loadable config with every default."""
    config_path = tmp_path / "config.yaml"
    config = init_config(config_path)

    assert config_path.exists()
    assert config == PipelineConfig()
    assert PipelineConfig.from_yaml(config_path) == config
    with open(config_path) as f:
        data = yaml.safe_load(f)
    assert data["detection"]["max_keypoints"] == 1000
    assert "Configuration saved to" in capsys.readouterr().out


def test_match_happy_path(tmp_path: Path, image_pair, capsys):
    """Test matching two real files writes a side-by-side composite."""
    first, second = image_pair
    output = tmp_path / "out" / "matches.png"

    match_command(first, second, output)

    assert output.exists()
    composite = cv2.imread(str(output))
    assert composite.shape == (128, 256, 3)

    out = capsys.readouterr().out
    assert "descriptors in" in out
    assert "us per descriptor" in out
    assert "descriptor pairs in" in out
    assert f"Wrote output image to {output}" in out


def test_match_missing_first_image(tmp_path: Path, image_pair, capsys):
    """Test a missing first image exits with status 1."""
    _, second = image_pair
    missing = tmp_path / "missing.png"

    with pytest.raises(SystemExit) as exc_info:
        match_command(missing, second, tmp_path / "out.png")

    assert exc_info.value.code == 1
    assert "First image file does not exist" in capsys.readouterr().err
    assert not (tmp_path / "out.png").exists()


def test_match_missing_second_image(tmp_path: Path, image_pair, capsys):
    """Test a missing second image exits with status 1."""
    first, _ = image_pair

    with pytest.raises(SystemExit) as exc_info:
        match_command(first, tmp_path / "missing.png", tmp_path / "out.png")

    assert exc_info.value.code == 1
    assert "Second image file does not exist" in capsys.readouterr().err


def test_match_missing_config(tmp_path: Path, image_pair, capsys):
    """Test a missing config file exits with status 1."""
    first, second = image_pair

    with pytest.raises(SystemExit) as exc_info:
        match_command(
            first, second, tmp_path / "out.png", config_path=tmp_path / "nope.yaml"
        )

    assert exc_info.value.code == 1
    assert "Config file not found" in capsys.readouterr().err


def test_match_invalid_config(tmp_path: Path, image_pair, capsys):
    """Test a config that fails validation exits with status 1."""
    first, second = image_pair
    config_path = tmp_path / "bad.yaml"
    config_path.write_text("detection:\n  fast_threshold: 999\n")

    with pytest.raises(SystemExit) as exc_info:
        match_command(first, second, tmp_path / "out.png", config_path=config_path)

    assert exc_info.value.code == 1
    assert "fast_threshold" in capsys.readouterr().err


def test_match_config_file_is_used(tmp_path: Path, image_pair):
    """Test values from the config file reach the pipeline."""
    first, second = image_pair
    config_path = tmp_path / "config.yaml"
    PipelineConfig(matching={"max_distance": 10}).to_yaml(config_path)

    with patch("orbkit.pipeline.run_pair", return_value=_empty_result()) as mock_run:
        match_command(first, second, tmp_path / "out.png", config_path=config_path)

    config = mock_run.call_args[0][3]
    assert config.matching.max_distance == 10


def test_match_device_override(tmp_path: Path, image_pair):
    """Test --device replaces the configured device."""
    first, second = image_pair

    with patch("orbkit.pipeline.run_pair", return_value=_empty_result()) as mock_run:
        match_command(first, second, tmp_path / "out.png", device="cuda")

    config = mock_run.call_args[0][3]
    assert config.runtime.device == "cuda"


def test_match_invalid_device(tmp_path: Path, image_pair, capsys):
    """Test an unknown device exits with status 1."""
    first, second = image_pair

    with pytest.raises(SystemExit) as exc_info:
        match_command(first, second, tmp_path / "out.png", device="tpu")

    assert exc_info.value.code == 1
    assert "Invalid configuration" in capsys.readouterr().err


def test_match_reports_zero_descriptors(tmp_path: Path, image_pair, capsys):
    """Test timing output is well-formed when nothing is detected."""
    first, second = image_pair

    with patch("orbkit.pipeline.run_pair", return_value=_empty_result()):
        match_command(first, second, tmp_path / "out.png")

    out = capsys.readouterr().out
    assert "Computed 0 descriptors in 0.250s (0.0us per descriptor)" in out
    assert "Matched 0 descriptor pairs in 0.050s" in out


def test_detect_writes_overlays(tmp_path: Path, image_pair, capsys):
    """Test detect renders one overlay per image."""
    output_dir = tmp_path / "detections"

    detect_command(list(image_pair), output_dir)

    assert (output_dir / "first_keypoints.png").exists()
    assert (output_dir / "second_keypoints.png").exists()
    assert not (output_dir / "first.pt").exists()
    assert "Wrote 2 overlay(s)" in capsys.readouterr().out


def test_detect_save_features(tmp_path: Path, image_pair):
    """Test --save-features writes loadable descriptor files."""
    output_dir = tmp_path / "detections"

    detect_command([image_pair[0]], output_dir, save_features=True)

    descriptors = load_features(output_dir / "first.pt")
    assert descriptors
    assert all(d.num_bits == 256 for d in descriptors)


def test_detect_missing_image(tmp_path: Path, capsys):
    """Test a missing input exits with status 1."""
    with pytest.raises(SystemExit) as exc_info:
        detect_command([tmp_path / "missing.png"], tmp_path / "out")

    assert exc_info.value.code == 1
    assert "Image file does not exist" in capsys.readouterr().err


def test_detect_duplicate_names(tmp_path: Path, image_pair, capsys):
    """Test inputs whose outputs would collide are rejected."""
    first, _ = image_pair
    other_dir = tmp_path / "other"
    other_dir.mkdir()
    duplicate = other_dir / "first.png"
    duplicate.write_bytes(first.read_bytes())

    with pytest.raises(SystemExit) as exc_info:
        detect_command([first, duplicate], tmp_path / "out")

    assert exc_info.value.code == 1
    assert "distinct file names" in capsys.readouterr().err


def test_main_match_undecodable_image_exits(tmp_path: Path, capsys):
    """Test an input that is not an image exits with status 1, not a traceback."""
    bad = tmp_path / "bad.png"
    bad.write_text("not an image")
    output = tmp_path / "out.png"

    argv = ["orbkit", "match", str(bad), str(bad), str(output)]
    with patch("sys.argv", argv):
        with pytest.raises(SystemExit) as exc_info:
            main()

    assert exc_info.value.code == 1
    err = capsys.readouterr().err
    assert "Error: Matching failed" in err
    assert "Failed to decode" in err
    assert not output.exists()


def test_detect_undecodable_image_exits(tmp_path: Path, capsys):
    """Test detection reports a decode failure on stderr with status 1."""
    bad = tmp_path / "bad.png"
    bad.write_text("not an image")

    with pytest.raises(SystemExit) as exc_info:
        detect_command([bad], tmp_path / "out")

    assert exc_info.value.code == 1
    assert "Error: Detection failed" in capsys.readouterr().err


def test_match_processing_error_exits(tmp_path: Path, image_pair, capsys):
    """Test errors raised during matching are reported, not propagated."""
    first, second = image_pair

    with patch("orbkit.pipeline.run_pair", side_effect=RuntimeError("boom")):
        with pytest.raises(SystemExit) as exc_info:
            match_command(first, second, tmp_path / "out.png")

    assert exc_info.value.code == 1
    assert "Error: Matching failed: boom" in capsys.readouterr().err


def test_main_match_argument_parsing(tmp_path: Path):
    """Test match arguments are parsed and dispatched."""
    argv = ["orbkit", "match", "a.png", "b.png", "out.png"]
    with patch("sys.argv", argv):
        with patch("orbkit.cli.match_command") as mock_match:
            main()

    mock_match.assert_called_once_with(
        first_path=Path("a.png"),
        second_path=Path("b.png"),
        output_path=Path("out.png"),
        config_path=None,
        device=None,
        verbose=False,
    )

    argv = [
        "orbkit",
        "match",
        "-v",
        "--device",
        "cuda",
        "--config",
        "c.yaml",
        "a.png",
        "b.png",
        "out.png",
    ]
    with patch("sys.argv", argv):
        with patch("orbkit.cli.match_command") as mock_match:
            main()

    kwargs = mock_match.call_args.kwargs
    assert kwargs["verbose"] is True
    assert kwargs["device"] == "cuda"
    assert kwargs["config_path"] == Path("c.yaml")


@pytest.mark.parametrize(
    "argv",
    [
        ["orbkit", "match"],
        ["orbkit", "match", "a.png", "b.png"],
        ["orbkit", "match", "a.png", "b.png", "out.png", "extra.png"],
    ],
)
def test_main_match_wrong_argument_count(argv):
    """Test anything other than three positionals is a usage error."""
    with patch("sys.argv", argv):
        with patch("orbkit.cli.match_command") as mock_match:
            with pytest.raises(SystemExit) as exc_info:
                main()

    assert exc_info.value.code == 2
    mock_match.assert_not_called()


def test_main_detect_argument_parsing():
    """Test detect arguments are parsed and dispatched."""
    argv = ["orbkit", "detect", "a.png", "b.png", "--output-dir", "out", "--save-features"]
    with patch("sys.argv", argv):
        with patch("orbkit.cli.detect_command") as mock_detect:
            main()

    mock_detect.assert_called_once_with(
        image_paths=[Path("a.png"), Path("b.png")],
        output_dir=Path("out"),
        config_path=None,
        save_features=True,
        verbose=False,
    )


def test_main_init_default_path():
    """Test init defaults to config.yaml."""
    with patch("sys.argv", ["orbkit", "init"]):
        with patch("orbkit.cli.init_config") as mock_init:
            main()

    mock_init.assert_called_once_with(config_path=Path("config.yaml"))


def test_main_no_command_exits(capsys):
    """Test running without a subcommand prints help and exits 1."""
    with patch("sys.argv", ["orbkit"]):
        with pytest.raises(SystemExit) as exc_info:
            main()

    assert exc_info.value.code == 1
    assert "usage" in capsys.readouterr().out
