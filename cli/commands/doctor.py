from __future__ import annotations

import os
from pathlib import Path
from typing import Sequence

import yaml

from cli.commands.specs import CommandContext, CommandResult, CommandSpec
from infra.config import load_config
from infra.paths import default_config_path, get_data_root


def _check_python(python_path: str, failures: list[str]) -> None:
    if not python_path:
        failures.append("PYTHON env var is not set.")
        return
    if not Path(python_path).exists():
        failures.append(f"PYTHON path does not exist: {python_path}")
    elif not os.access(python_path, os.X_OK):
        failures.append(f"PYTHON is not executable: {python_path}")


def _check_config(failures: list[str], warnings: list[str]) -> None:
    config_path = default_config_path()
    if not config_path.exists():
        warnings.append(f"Ledger config not found at {config_path}; built-in testnet defaults apply.")
        return
    try:
        config = load_config(config_path)
    except (OSError, ValueError, TypeError, yaml.YAMLError) as exc:
        failures.append(f"Ledger config {config_path} is invalid: {exc}")
        return
    if not config.rpc.url.startswith(("http://", "https://")):
        failures.append(f"RPC url is not an http(s) endpoint: {config.rpc.url}")


def run(args: Sequence[str], context: CommandContext) -> CommandResult:
    failures: list[str] = []
    warnings: list[str] = []

    _check_python(context.python_path, failures)

    if not (context.repo_root / "reconciliation").exists():
        failures.append("Repository root not detected (missing reconciliation/).")

    _check_config(failures, warnings)

    data_root = get_data_root()
    if not data_root.exists():
        warnings.append(f"Data root does not exist: {data_root}")

    if failures:
        lines = ["Doctor checks failed:"] + [f"- {entry}" for entry in failures]
        if warnings:
            lines.append("Warnings:")
            lines.extend(f"- {entry}" for entry in warnings)
        return CommandResult(exit_code=2, stdout="", stderr="\n".join(lines))

    lines = ["Doctor checks passed."]
    if warnings:
        lines.append("Warnings:")
        lines.extend(f"- {entry}" for entry in warnings)
    return CommandResult(exit_code=0, stdout="\n".join(lines), stderr="")


spec = CommandSpec(
    name="doctor",
    description="Check PYTHON env, repo root, ledger config and data root.",
    handler=run,
    returns="Pass/fail report; exit code 2 when a hard check fails.",
    example="doctor",
)
