from __future__ import annotations

from cli.commands.specs import ParamSpec

LEDGER_PARAMS: tuple[ParamSpec, ...] = (
    ParamSpec("--config", "path", "Ledger config file (YAML or JSON).", default="configs/ledger.yml"),
    ParamSpec("--rpc-url", "str", "Override the JSON-RPC endpoint."),
    ParamSpec("--log-level", "str", "DEBUG, INFO, WARNING or ERROR.", default="WARNING"),
    ParamSpec("--csv", "path", "Also export the table as CSV (relative paths go under <data root>/exports)."),
)
