from __future__ import annotations

from cli.commands.common_params import LEDGER_PARAMS
from cli.commands.specs import CommandSpec

spec = CommandSpec(
    name="list-sales",
    description="List announced sales with metadata, supply and unit price.",
    module="scripts.list_sales",
    params=LEDGER_PARAMS,
    returns="JSON summary to stdout with one entry per sale; partial entries carry placeholder metadata.",
    example="list-sales --csv sales.csv",
)
