"""``imgconv init``: create the workspace and report what it holds."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from image_converter.core.workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imgconv init",
        description=(
            "Create the imgconv workspace holding the convert.toml config "
            "and the rotating run logs."
        ),
    )
    parser.add_argument(
        "--path",
        type=Path,
        help=(
            f"Workspace root to prepare (defaults to ${WORKSPACE_ENV} or "
            "~/.image-converter-data)."
        ),
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Print nothing when the workspace is ready.",
    )
    return parser


def describe_layout(layout: WorkspaceLayout) -> list[str]:
    """Render the layout as report lines, one per directory."""

    def marker(key: str) -> str:
        return "(created)" if layout.created.get(key) else "(exists)"

    entries = layout.items()
    width = max((len(name) for name, _ in entries), default=0)
    report = [f"Workspace ready at {layout.home} {marker('home')}"]
    report.extend(
        f"  {name:<{width}}  {directory} {marker(name)}"
        for name, directory in entries
    )
    return report


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(
        list(argv) if argv is not None else None
    )

    try:
        layout = ensure_workspace(path=args.path)
    except WorkspaceError as exc:
        print(exc, file=sys.stderr)
        return 1

    if not args.quiet:
        print("\n".join(describe_layout(layout)))
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
