"""Top-level ``imgconv`` command dispatcher."""

from __future__ import annotations

import inspect
import sys
from dataclasses import dataclass
from importlib import import_module, metadata
from typing import Callable, Mapping, Optional, Sequence

PROG = "imgconv"
DISTRIBUTION = "image-converter"


@dataclass(frozen=True)
class CommandSpec:
    """A subcommand implemented by ``module.entry_point(argv)``."""

    name: str
    summary: str
    module: str
    entry_point: str = "main"

    @property
    def prog(self) -> str:
        return f"{PROG} {self.name}"

    def run(self, argv: Sequence[str]) -> int:
        target = getattr(import_module(self.module), self.entry_point)
        return _invoke(target, self.prog, argv)


_COMMAND_SPECS: Sequence[CommandSpec] = (
    CommandSpec(
        name="init",
        summary="Bootstrap the imgconv workspace (config and logs).",
        module="image_converter.workspace.cli",
    ),
    CommandSpec(
        name="convert",
        summary="Convert an image tree into one target format.",
        module="image_converter.convert.cli",
    ),
    CommandSpec(
        name="scan",
        summary="List the images a conversion would pick up.",
        module="image_converter.convert.cli",
        entry_point="scan_main",
    ),
    CommandSpec(
        name="formats",
        summary="Show target formats and DDS compression modes.",
        module="image_converter.convert.cli",
        entry_point="formats_main",
    ),
)

COMMANDS: Mapping[str, CommandSpec] = {
    spec.name: spec for spec in _COMMAND_SPECS
}


def format_command_table() -> str:
    width = max(len(name) for name in COMMANDS)
    rows = [f"  {spec.name:<{width}}  {spec.summary}" for spec in _COMMAND_SPECS]
    return "\n".join(["Available commands:", *rows])


def format_usage() -> str:
    return "\n".join(
        [
            f"Usage: {PROG} <command> [args...]",
            f"Run `{PROG} list` for commands or `{PROG} help <name>` for "
            "details.",
            "",
            format_command_table(),
        ]
    )


def _out(text: str) -> None:
    sys.stdout.write(text + "\n")


def _err(text: str) -> None:
    sys.stderr.write(text + "\n")


def _unknown(command: str) -> int:
    _err(f"Unknown command '{command}'.")
    _err(format_command_table())
    return 2


def _show_usage(argv: Sequence[str]) -> int:
    _out(format_usage())
    return 0


def _show_commands(argv: Sequence[str]) -> int:
    _out(format_command_table())
    return 0


def _show_version(argv: Sequence[str]) -> int:
    try:
        _out(metadata.version(DISTRIBUTION))
    except metadata.PackageNotFoundError:
        _out("unknown")
    return 0


def _show_help(argv: Sequence[str]) -> int:
    if not argv:
        return _show_usage(argv)
    spec = COMMANDS.get(argv[0])
    if spec is None:
        return _unknown(argv[0])
    _out(f"{spec.name}: {spec.summary}")
    _out(f"Run `{spec.prog} --help` for CLI-specific options.")
    return 0


_BUILTINS: Mapping[str, Callable[[Sequence[str]], int]] = {
    "-h": _show_usage,
    "--help": _show_usage,
    "-V": _show_version,
    "--version": _show_version,
    "version": _show_version,
    "list": _show_commands,
    "help": _show_help,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(argv if argv is not None else sys.argv[1:])
    if not args:
        _out(format_usage())
        return 2

    head, *tail = args
    builtin = _BUILTINS.get(head)
    if builtin is not None:
        return builtin(tail)

    spec = COMMANDS.get(head)
    if spec is None:
        return _unknown(head)
    return spec.run(tail)


def _invoke(
    func: Callable[..., object], prog: str, argv: Sequence[str]
) -> int:
    """Call a subcommand entry point with ``sys.argv`` pointed at ``prog``.

    Entry points may take the argument list or read ``sys.argv`` themselves;
    ``SystemExit`` from argparse is turned back into a return code.
    """

    args = list(argv)
    saved_argv = sys.argv
    sys.argv = [prog, *args]
    try:
        result = func(args) if _takes_argv(func) else func()
    except SystemExit as exc:
        return _exit_code(exc)
    finally:
        sys.argv = saved_argv
    return result if isinstance(result, int) else 0


def _takes_argv(func: Callable[..., object]) -> bool:
    try:
        parameters = inspect.signature(func).parameters.values()
    except (TypeError, ValueError):
        return False
    positional = (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
        inspect.Parameter.VAR_POSITIONAL,
    )
    return any(param.kind in positional for param in parameters)


def _exit_code(exc: SystemExit) -> int:
    if exc.code is None:
        return 0
    if isinstance(exc.code, int):
        return exc.code
    _err(str(exc.code))
    return 1


if __name__ == "__main__":  # pragma: no cover - manual invocation guard
    raise SystemExit(main())
