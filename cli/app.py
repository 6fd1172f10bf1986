"""Interactive ``salescope>`` shell.

Each command line is checked against its :class:`CommandSpec`, then either
handled in-process or forwarded to ``$PYTHON -m scripts.<name>``. Every run
leaves a transcript under ``<data root>/logs/cli``.
"""

from __future__ import annotations

import json
import logging
import os
import shlex
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import typer

try:
    import readline
except ImportError:  # pragma: no cover - Windows
    readline = None  # type: ignore[assignment]

from cli.commands.registry import COMMAND_SPECS
from cli.commands.specs import CommandContext, CommandResult, CommandSpec
from infra.paths import cli_log_root

LOGGER = logging.getLogger(__name__)

app = typer.Typer(add_completion=False, help="Reconcile token sales against a Sui-like ledger.")

PROMPT = "salescope> "
INTERACTIVE_ONLY = "salescope is interactive: run `salescope` and type commands at the prompt."
PROJECT_MARKER = "reconciliation"
EXIT_WORDS = frozenset({"exit", "quit"})
HELP_WORDS = frozenset({"help", "-h", "--help"})

COMMANDS: Dict[str, CommandSpec] = {spec.name: spec for spec in COMMAND_SPECS}


def find_project_root(start: Optional[Path] = None) -> Path:
    origin = (start or Path.cwd()).resolve()
    for candidate in (origin, *origin.parents):
        if (candidate / PROJECT_MARKER).is_dir():
            return candidate
    return origin


def usage(spec: CommandSpec) -> str:
    """One-line synopsis built from the command's parameters."""
    parts = [spec.name]
    for param in spec.params:
        token = f"{param.flag} <{param.kind}>"
        parts.append(token if param.required else f"[{token}]")
    return " ".join(parts)


def command_help(spec: CommandSpec) -> str:
    sections = [f"{spec.name}: {spec.description}", f"Usage: {usage(spec)}"]
    if spec.params:
        sections.append("Parameters:\n" + "\n".join(param.render() for param in spec.params))
    for label, value in (("Returns", spec.returns), ("Example", spec.example)):
        if value:
            sections.append(f"{label}: {value}")
    if spec.module:
        sections.append(f"Forwards to: python -m {spec.module}")
    return "\n".join(sections)


def overview() -> str:
    width = max(len(name) for name in COMMANDS) + 2
    rows = [f"  {spec.name:<{width}}{spec.description}" for spec in COMMAND_SPECS]
    rows.append(f"  {'help':<{width}}List commands; `<command> --help` shows parameters.")
    rows.append(f"  {'exit':<{width}}Leave the shell.")
    return "Commands:\n" + "\n".join(rows)


def missing_required(spec: CommandSpec, args: Sequence[str]) -> List[str]:
    given = {arg.split("=", 1)[0] for arg in args if arg.startswith("--")}
    return [param.flag for param in spec.params if param.required and param.flag not in given]


def forward(spec: CommandSpec, args: Sequence[str], context: CommandContext) -> CommandResult:
    """Run ``spec`` with ``args``; module commands go through a child interpreter."""
    if spec.handler is not None:
        return spec.handler(args, context)
    if not spec.module:
        return CommandResult(exit_code=2, stdout="", stderr=f"{spec.name} has no handler or module.")
    if not context.python_path:
        return CommandResult(
            exit_code=2,
            stdout="",
            stderr="PYTHON env var is required, e.g. export PYTHON=/usr/bin/python3",
        )
    missing = missing_required(spec, args)
    if missing:
        return CommandResult(
            exit_code=2,
            stdout="",
            stderr=f"{spec.name}: missing {', '.join(missing)}\nUsage: {usage(spec)}",
        )
    argv = [context.python_path, "-m", spec.module, *args]
    LOGGER.debug("Forwarding %s", argv)
    completed = subprocess.run(
        argv,
        cwd=str(context.repo_root),
        env={**os.environ, "PYTHONPATH": str(context.repo_root)},
        capture_output=True,
        text=True,
    )
    return CommandResult(exit_code=completed.returncode, stdout=completed.stdout, stderr=completed.stderr)


@dataclass(frozen=True)
class Transcript:
    command: str
    args: tuple[str, ...]
    result: CommandResult
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def summary_status(self) -> Optional[str]:
        """Status field of the JSON summary the scripts print, if any."""
        try:
            payload = json.loads(self.result.stdout)
        except ValueError:
            return None
        if isinstance(payload, dict):
            return payload.get("status")
        return None

    def render(self) -> str:
        header = {
            "command": self.command,
            "args": list(self.args),
            "started_at": self.started_at.isoformat(),
            "exit_code": self.result.exit_code,
            "status": self.summary_status(),
        }
        return "\n".join(
            [
                json.dumps(header, sort_keys=True),
                "[stdout]",
                self.result.stdout.rstrip(),
                "[stderr]",
                self.result.stderr.rstrip(),
                "",
            ]
        )

    def write(self) -> Path:
        log_dir = cli_log_root()
        log_dir.mkdir(parents=True, exist_ok=True)
        path = log_dir / f"{self.started_at:%Y%m%d_%H%M%S}_{self.command}.log"
        path.write_text(self.render(), encoding="utf-8")
        return path


def handle_line(raw: str, context: CommandContext) -> Optional[CommandResult]:
    """Execute one shell line; returns None for blank lines, help and unknown commands."""
    text = raw.strip()
    if text in EXIT_WORDS:
        raise typer.Exit()
    if text in HELP_WORDS:
        typer.echo(overview())
        return None
    tokens = shlex.split(text)
    if not tokens:
        return None
    name, args = tokens[0], tokens[1:]
    spec = COMMANDS.get(name)
    if spec is None:
        typer.echo(f"Unknown command: {name}\n{overview()}")
        return None
    if HELP_WORDS.intersection(args):
        typer.echo(command_help(spec))
        return None

    result = forward(spec, args, context)
    if result.stdout:
        typer.echo(result.stdout, nl=not result.stdout.endswith("\n"))
    if result.stderr:
        typer.echo(result.stderr, err=True, nl=not result.stderr.endswith("\n"))
    path = Transcript(command=name, args=tuple(args), result=result).write()
    LOGGER.info("%s exited %s; transcript at %s", name, result.exit_code, path)
    if result.exit_code != 0:
        typer.echo(f"{name} exited with code {result.exit_code}", err=True)
    return result


def _complete(text: str, state: int) -> Optional[str]:
    matches = [name for name in sorted(COMMANDS) if name.startswith(text)]
    return matches[state] if state < len(matches) else None


def repl(context: CommandContext) -> None:
    if readline is not None:
        readline.set_completer(_complete)
        readline.parse_and_bind("tab: complete")
    while True:
        try:
            line = input(PROMPT)
        except EOFError:
            return
        handle_line(line, context)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is not None:
        typer.echo(INTERACTIVE_ONLY, err=True)
        raise typer.Exit(code=2)
    repl(CommandContext(repo_root=find_project_root(), python_path=os.environ.get("PYTHON", "").strip()))


def _interactive_only(_: typer.Context) -> None:
    typer.echo(INTERACTIVE_ONLY, err=True)
    raise typer.Exit(code=2)


# Subcommands exist so `salescope --help` lists them; invoking one points back to the prompt.
for _spec in COMMAND_SPECS:
    app.command(
        name=_spec.name,
        help=_spec.description,
        context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
    )(_interactive_only)


if __name__ == "__main__":
    app()
