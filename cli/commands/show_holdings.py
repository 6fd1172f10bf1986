from __future__ import annotations

from cli.commands.common_params import LEDGER_PARAMS
from cli.commands.specs import CommandSpec, ParamSpec

spec = CommandSpec(
    name="show-holdings",
    description="Count the units of a sale held by an account.",
    module="scripts.show_holdings",
    params=(
        ParamSpec("--account", "str", "Owner address.", required=True),
        ParamSpec("--sale-id", "str", "Sale object id.", required=True),
        *LEDGER_PARAMS,
    ),
    returns="JSON summary with the unit total and each attributed receipt.",
    example="show-holdings --account 0xowner --sale-id 0xabc",
)
