"""CLI entry points for batch image conversion."""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from image_converter.core import config_templates
from image_converter.core import workspace as workspace_mod
from image_converter.core.config_templates import ConfigTemplateError
from image_converter.core.files import RECOGNIZED_EXTENSIONS, iter_source_files
from image_converter.core.logging import configure_logger
from image_converter.core.workspace import WorkspaceError

from . import imaging
from .channel import start_conversion
from .codec import Codec
from .config import (
    CONFIG_FILENAME,
    ConfigOverrides,
    ConvertConfigError,
    load_config,
)
from .engine import ConversionRequest, ExecutionMode
from .errors import ChannelDisconnectedError, DependencyError
from .formats import DdsFormat, FormatError, TargetFormat
from .outcome import ConversionOutcome
from .paths import filter_eligible

POLL_INTERVAL = 0.1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imgconv convert",
        description=(
            "Convert every PNG, JPEG, TGA and DDS file under SOURCE into one "
            "target format, mirroring the directory layout."
        ),
        epilog=(
            "Run `imgconv convert config init` to scaffold the default "
            "convert.toml template."
        ),
    )
    parser.add_argument(
        "source",
        type=Path,
        help="Directory scanned recursively for images.",
    )
    parser.add_argument(
        "--dest",
        type=Path,
        help="Destination root (defaults to SOURCE).",
    )
    parser.add_argument(
        "--format",
        dest="target",
        help="Target format: png, jpeg, jpg, tga or dds.",
    )
    parser.add_argument(
        "--dds-format",
        help="DDS compression: BC1_UNORM, BC3_UNORM or R8G8B8A8_UNORM.",
    )
    strategy = parser.add_mutually_exclusive_group()
    strategy.add_argument(
        "--sequential",
        dest="mode",
        action="store_const",
        const=ExecutionMode.SEQUENTIAL,
        help="Convert one file at a time on a single worker.",
    )
    strategy.add_argument(
        "--parallel",
        dest="mode",
        action="store_const",
        const=ExecutionMode.PARALLEL,
        help="Spread chunks of files over a thread pool (default).",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        help="Files per parallel work item (defaults to 5).",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Thread pool size for parallel runs (defaults to CPU count).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help=(
            "convert.toml to load (defaults to $IMGCONV_CONFIG, then the "
            "workspace config directory)."
        ),
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root used for config and logs.",
    )
    parser.add_argument(
        "--log-level",
        help="Threshold for the run log file: DEBUG, INFO, WARNING or ERROR.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror log records to stderr.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    raw = list(sys.argv[1:] if argv is None else argv)
    if raw and raw[0] == "config":
        return _config_main(raw[1:])

    parser = _build_parser()
    args = parser.parse_args(raw)

    try:
        load_result = load_config(
            config_path=args.config,
            overrides=_overrides_from_args(args),
            workspace_path=args.workspace,
        )
    except (ConvertConfigError, FormatError, WorkspaceError) as exc:
        parser.error(str(exc))

    config = load_result.config
    source_root = args.source.expanduser().resolve()
    try:
        files = list(iter_source_files(source_root))
    except (FileNotFoundError, NotADirectoryError) as exc:
        parser.error(str(exc))

    try:
        codec = _build_codec(config.target)
    except DependencyError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1

    logger, log_path = configure_logger(
        "image_converter.convert",
        log_dir=load_result.layout.path_for("logs"),
        level=config.log_level,
        verbose=args.verbose,
    )
    destination_root = config.destination_dir or source_root
    logger.debug(
        "convert CLI invoked",
        extra={
            "config_path": (
                str(load_result.config_path)
                if load_result.config_path
                else None
            ),
            "files": len(files),
        },
    )

    request = ConversionRequest(
        files=tuple(files),
        source_root=source_root,
        destination_root=destination_root,
        target=config.target,
        dds_format=config.dds_format,
        strategy=config.strategy,
    )

    console = Console()
    receiver = start_conversion(request, codec=codec, logger=logger)
    try:
        with console.status(
            f"Converting {len(files)} file(s) to {config.target.value}..."
        ):
            outcome = receiver.poll()
            while outcome is None:
                time.sleep(POLL_INTERVAL)
                outcome = receiver.poll()
    except ChannelDisconnectedError as exc:
        sys.stderr.write(f"{exc} See {log_path} for details.\n")
        return 1

    _print_summary(console, outcome, destination_root, log_path)
    return outcome.exit_code


def _overrides_from_args(args: argparse.Namespace) -> ConfigOverrides:
    return ConfigOverrides(
        destination_dir=args.dest,
        target=(
            TargetFormat.from_value(args.target)
            if args.target is not None
            else None
        ),
        dds_format=(
            DdsFormat.from_value(args.dds_format)
            if args.dds_format is not None
            else None
        ),
        mode=args.mode,
        chunk_size=args.chunk_size,
        max_workers=args.workers,
        log_level=args.log_level,
    )


def _build_codec(target: TargetFormat) -> Codec:
    """Return the production codec, only requiring Wand for DDS targets."""
    return imaging.build_codec(container_encoding=target.is_container)


def _print_summary(
    console: Console,
    outcome: ConversionOutcome,
    destination_root: Path,
    log_path: Path,
) -> None:
    overview = Table(
        title="convert summary",
        show_header=False,
        box=box.SIMPLE,
        expand=False,
    )
    overview.add_column("Field", style="bold")
    overview.add_column("Value", overflow="fold")
    overview.add_row("converted", str(outcome.succeeded))
    overview.add_row("skipped", str(outcome.skipped))
    overview.add_row("failed", str(outcome.failed))
    overview.add_row("output dir", str(destination_root))
    overview.add_row("log file", str(log_path))
    console.print(overview)

    if not outcome.failures:
        return

    failures = Table(title="Failures", box=box.SIMPLE, expand=True)
    failures.add_column("Source", overflow="fold")
    failures.add_column("Kind")
    failures.add_column("Reason", overflow="fold")
    for failure in outcome.failures:
        failures.add_row(str(failure.source), failure.kind.value, failure.message)
    console.print(failures)


def scan_main(argv: Sequence[str] | None = None) -> int:
    """List the files a conversion of SOURCE would pick up."""

    parser = argparse.ArgumentParser(
        prog="imgconv scan",
        description=(
            "List the files under SOURCE that `imgconv convert` would hand "
            "to the converter."
        ),
    )
    parser.add_argument("source", type=Path, help="Directory to scan.")
    parser.add_argument(
        "--format",
        dest="target",
        help="Only list files that would be converted into this format.",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)

    root = args.source.expanduser().resolve()
    try:
        target = (
            TargetFormat.from_value(args.target)
            if args.target is not None
            else None
        )
        files = list(iter_source_files(root))
    except (FormatError, FileNotFoundError, NotADirectoryError) as exc:
        parser.error(str(exc))

    if target is not None:
        files = filter_eligible(files, target)

    for path in files:
        sys.stdout.write(f"{path.relative_to(root)}\n")
    sys.stderr.write(f"{len(files)} file(s) found under {root}\n")
    return 0


def formats_main(argv: Sequence[str] | None = None) -> int:
    """Print the supported target formats and DDS compression modes."""

    parser = argparse.ArgumentParser(
        prog="imgconv formats",
        description="List supported target formats and DDS sub-formats.",
    )
    parser.parse_args(list(argv) if argv is not None else None)

    console = Console()
    targets = Table(title="Target formats", box=box.SIMPLE)
    targets.add_column("Name")
    targets.add_column("Extension")
    targets.add_column("Kind")
    for target in TargetFormat:
        kind = "container" if target.is_container else "raster"
        targets.add_row(target.name, f".{target.extension}", kind)
    console.print(targets)

    dds = Table(title="DDS formats", box=box.SIMPLE)
    dds.add_column("Name")
    dds.add_column("ImageMagick compression")
    for dds_format in DdsFormat:
        dds.add_row(dds_format.label, dds_format.value)
    console.print(dds)

    console.print(
        "Recognized source extensions: "
        + ", ".join(RECOGNIZED_EXTENSIONS)
    )
    return 0


def _config_main(argv: Sequence[str]) -> int:
    """Handle ``imgconv convert config init``."""

    parser = argparse.ArgumentParser(
        prog="imgconv convert config",
        description="Scaffold the convert.toml used by `imgconv convert`.",
    )
    actions = parser.add_subparsers(dest="action", required=True)
    init = actions.add_parser("init", help="Write the default convert.toml.")
    where = init.add_mutually_exclusive_group()
    where.add_argument(
        "--path",
        type=Path,
        help="Write the template to this file instead of the workspace.",
    )
    where.add_argument(
        "--workspace",
        type=Path,
        help="Workspace whose config/ directory receives convert.toml.",
    )
    init.add_argument(
        "--force",
        action="store_true",
        help="Replace an existing convert.toml.",
    )
    args = parser.parse_args(argv)

    try:
        if args.path is not None:
            target = Path.cwd() / args.path.expanduser()
        else:
            layout = workspace_mod.ensure_workspace(path=args.workspace)
            target = layout.path_for("config") / CONFIG_FILENAME
        written = config_templates.get_template("convert").write(
            target, overwrite=args.force
        )
    except (WorkspaceError, ConfigTemplateError) as exc:
        sys.stderr.write(f"{exc}\n")
        return 1

    sys.stdout.write(f"Wrote convert config to {written}\n")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
