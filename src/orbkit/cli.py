"""Command-line interface for orbkit."""

import argparse
import logging
import sys
from pathlib import Path

from orbkit.config import PipelineConfig


def _setup_logging(verbose: bool = False) -> None:
    """Configure root logging for CLI commands.

    Args:
        verbose: If True, set logging to DEBUG level.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_config(config_path: Path | None) -> PipelineConfig:
    """Load a config file, or defaults when no path is given.

    Exits with status 1 if the file is missing or invalid.
    """
    if config_path is None:
        return PipelineConfig()

    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}", file=sys.stderr)
        sys.exit(1)

    try:
        return PipelineConfig.from_yaml(config_path)
    except Exception as e:
        print(f"Error: Failed to load config: {e}", file=sys.stderr)
        sys.exit(1)


def init_config(config_path: Path) -> PipelineConfig:
    """Write a configuration file with every default spelled out.

    Args:
        config_path: Path where the config YAML will be saved.

    Returns:
        The default PipelineConfig.
    """
    config = PipelineConfig()
    config.to_yaml(config_path)
    print(f"[OK] Configuration saved to: {config_path}")
    return config


def match_command(
    first_path: Path,
    second_path: Path,
    output_path: Path,
    config_path: Path | None = None,
    device: str | None = None,
    verbose: bool = False,
) -> None:
    """Match two images and write a side-by-side composite with match lines.

    Args:
        first_path: First input image.
        second_path: Second input image.
        output_path: Output composite image path.
        config_path: Optional pipeline config YAML file.
        device: Optional device override (replaces config.runtime.device).
        verbose: If True, set logging to DEBUG level.
    """
    _setup_logging(verbose)

    # Validate inputs before any processing
    if not first_path.is_file():
        print(f"Error: First image file does not exist: {first_path}", file=sys.stderr)
        sys.exit(1)
    if not second_path.is_file():
        print(
            f"Error: Second image file does not exist: {second_path}", file=sys.stderr
        )
        sys.exit(1)

    config = _load_config(config_path)

    # Apply CLI overrides and revalidate
    if device is not None:
        data = config.model_dump()
        data["runtime"]["device"] = device
        try:
            config = PipelineConfig.model_validate(data)
        except ValueError as e:
            print(f"Error: Invalid configuration: {e}", file=sys.stderr)
            sys.exit(1)

    # Lazy import to keep argument parsing fast
    from orbkit.pipeline import run_pair

    try:
        result = run_pair(first_path, second_path, output_path, config)

        print(
            f"Computed {result.num_descriptors} descriptors in "
            f"{result.extraction_seconds:.3f}s "
            f"({result.seconds_per_descriptor * 1e6:.1f}us per descriptor)"
        )
        print(
            f"Matched {len(result.matches)} descriptor pairs in "
            f"{result.matching_seconds:.3f}s"
        )
        print(f"Wrote output image to {output_path}")

    except Exception as e:
        print(f"Error: Matching failed: {e}", file=sys.stderr)
        import traceback

        traceback.print_exc()
        sys.exit(1)


def detect_command(
    image_paths: list[Path],
    output_dir: Path,
    config_path: Path | None = None,
    save_features: bool = False,
    verbose: bool = False,
) -> None:
    """Detect keypoints in one or more images and render overlays.

    Writes ``{stem}_keypoints.png`` per image and, with ``save_features``,
    ``{stem}.pt`` holding the descriptors.

    Args:
        image_paths: Input images.
        output_dir: Output directory.
        config_path: Optional pipeline config YAML file.
        save_features: Also save descriptors as .pt files.
        verbose: If True, set logging to DEBUG level.
    """
    _setup_logging(verbose)

    missing = [p for p in image_paths if not p.is_file()]
    if missing:
        for path in missing:
            print(f"Error: Image file does not exist: {path}", file=sys.stderr)
        sys.exit(1)

    stems = [p.stem for p in image_paths]
    if len(set(stems)) != len(stems):
        print("Error: Input images must have distinct file names", file=sys.stderr)
        sys.exit(1)

    config = _load_config(config_path)

    import numpy as np

    from orbkit.features import create_pattern, extract_features_batch
    from orbkit.features import save_features as save_feature_file
    from orbkit.image import load_image
    from orbkit.visualization import render_keypoints

    try:
        images = {p.stem: load_image(p, grayscale=False) for p in image_paths}
        pattern = create_pattern(config.description)
        all_features = extract_features_batch(images, config, pattern=pattern)

        output_dir.mkdir(parents=True, exist_ok=True)
        for name, descriptors in all_features.items():
            positions = np.array(
                [d.keypoint.position for d in descriptors], dtype=np.float32
            ).reshape(-1, 2)
            orientations = np.array(
                [d.keypoint.orientation for d in descriptors], dtype=np.float64
            )
            render_keypoints(
                images[name],
                positions,
                orientations,
                output_path=output_dir / f"{name}_keypoints.png",
                color=tuple(config.runtime.line_color),
            )
            if save_features:
                save_feature_file(descriptors, output_dir / f"{name}.pt")
            print(f"  {name}: {len(descriptors)} keypoints")

        print(f"\nWrote {len(all_features)} overlay(s) to {output_dir}")

    except Exception as e:
        print(f"Error: Detection failed: {e}", file=sys.stderr)
        import traceback

        traceback.print_exc()
        sys.exit(1)


def main() -> None:
    """Main entry point for the orbkit CLI."""
    parser = argparse.ArgumentParser(
        prog="orbkit",
        description="Oriented binary feature detection and matching.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # match subcommand
    match_parser = subparsers.add_parser(
        "match",
        help="Match two images and draw correspondences side by side",
    )
    match_parser.add_argument("first", type=Path, help="First input image")
    match_parser.add_argument("second", type=Path, help="Second input image")
    match_parser.add_argument("output", type=Path, help="Output composite image")
    match_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to pipeline config YAML file (default: built-in defaults)",
    )
    match_parser.add_argument(
        "--device",
        type=str,
        default=None,
        help="Override device (e.g., 'cpu' or 'cuda')",
    )
    match_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    # detect subcommand
    detect_parser = subparsers.add_parser(
        "detect",
        help="Detect keypoints and render overlays",
    )
    detect_parser.add_argument("images", type=Path, nargs="+", help="Input images")
    detect_parser.add_argument(
        "--output-dir",
        type=Path,
        required=True,
        help="Output directory for overlays and features",
    )
    detect_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to pipeline config YAML file (default: built-in defaults)",
    )
    detect_parser.add_argument(
        "--save-features",
        action="store_true",
        help="Also save descriptors as .pt files",
    )
    detect_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    # init subcommand
    init_parser = subparsers.add_parser(
        "init",
        help="Write a default config file",
    )
    init_parser.add_argument(
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to output config YAML file (default: config.yaml)",
    )

    args = parser.parse_args()

    # Dispatch
    if args.command == "match":
        match_command(
            first_path=args.first,
            second_path=args.second,
            output_path=args.output,
            config_path=args.config,
            device=args.device,
            verbose=args.verbose,
        )
    elif args.command == "detect":
        detect_command(
            image_paths=args.images,
            output_dir=args.output_dir,
            config_path=args.config,
            save_features=args.save_features,
            verbose=args.verbose,
        )
    elif args.command == "init":
        init_config(config_path=args.config)
    else:
        parser.print_help()
        sys.exit(1)
