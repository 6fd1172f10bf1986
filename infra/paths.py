"""Shared helpers for resolving runtime config and output locations."""

from __future__ import annotations

import os
from pathlib import Path


_REPO_ROOT = Path(__file__).resolve().parents[1]


def get_repo_root() -> Path:
    """Return the repository root for callers that need absolute resolution."""

    return _REPO_ROOT


def get_data_root() -> Path:
    """Resolve the runtime data root honoring the SALESCOPE_DATA_ROOT override."""

    override = os.environ.get("SALESCOPE_DATA_ROOT")
    if override:
        return Path(override).expanduser()
    return get_repo_root() / ".salescope_data"


def default_config_path() -> Path:
    """Ledger config used when no --config flag is given."""

    override = os.environ.get("SALESCOPE_CONFIG")
    if override:
        return Path(override).expanduser()
    return get_repo_root() / "configs" / "ledger.yml"


def cli_log_root() -> Path:
    """Directory holding per-command CLI transcripts."""

    return get_data_root() / "logs" / "cli"


def exports_root(*segments: str) -> Path:
    """Base directory for CSV report exports."""

    base = get_data_root() / "exports"
    return base.joinpath(*segments) if segments else base


__all__ = [
    "cli_log_root",
    "default_config_path",
    "exports_root",
    "get_data_root",
    "get_repo_root",
]
