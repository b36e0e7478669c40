from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import AppConfig
from .manifest import ManifestError, load_configurations, write_sample
from .pipeline import ImagePipeline

__version__ = "0.1.0"


def _configure_logging(log_path: str | None, verbose: bool) -> None:
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_path:
        log_file = Path(log_path).expanduser()
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file))
        except OSError as exc:  # pragma: no cover - filesystem permissions
            print(f"Warning: failed to open log file {log_file}: {exc}", file=sys.stderr)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=handlers,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="imp",
        description="A command-line tool to help automate image processing for projects.",
    )
    parser.add_argument("manifests", nargs="*", help="Manifest file(s) to process.")
    parser.add_argument(
        "-o",
        "--output",
        dest="output_dir",
        help="Output directory; ~~~/ paths in manifests resolve against it (default: cwd).",
    )
    parser.add_argument(
        "--sample",
        dest="sample_path",
        help="Write an annotated sample manifest to this path and exit.",
    )
    parser.add_argument(
        "--icon-packer",
        dest="icon_packer",
        help="Tool used to build .icns files ('builtin' or an iconutil-compatible command).",
    )
    parser.add_argument(
        "--trash",
        dest="use_trash",
        action="store_true",
        default=None,
        help="Move replaced package contents to the trash instead of deleting them.",
    )
    parser.add_argument("--log-file", dest="log_file", help="Write detailed logs to this file.")
    parser.add_argument(
        "--verbose", dest="verbose", action="store_true", help="Enable verbose logging."
    )
    parser.add_argument("--version", action="version", version=f"imp version {__version__}")
    args = parser.parse_args(argv)

    if not args.manifests and not args.sample_path:
        parser.error("You must provide a manifest file or --sample PATH.")
    return args


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)

    try:
        config = AppConfig.from_env(
            output_dir=args.output_dir,
            log_path=args.log_file,
            icon_packer=args.icon_packer,
            use_trash=args.use_trash,
        )
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    _configure_logging(config.log_path, args.verbose)

    if args.sample_path:
        try:
            write_sample(Path(args.sample_path))
        except ManifestError as exc:
            logging.error("%s", exc)
            return 2
        if not args.manifests:
            return 0

    logging.info(
        "Output directory → %s (icon packer: %s, trash: %s)",
        config.output_dir,
        config.icon_packer,
        "on" if config.use_trash else "off",
    )

    try:
        configurations = load_configurations(
            [Path(path) for path in args.manifests],
            output_dir=Path(config.output_dir),
        )
    except ManifestError as exc:
        logging.error("%s", exc)
        return 2

    summary = ImagePipeline(config).run(configurations)
    if not summary.ok:
        logging.error("Failed configuration(s): %s", ", ".join(summary.failed))
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
