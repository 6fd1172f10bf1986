from __future__ import annotations

from cli.commands.common_params import LEDGER_PARAMS
from cli.commands.specs import CommandSpec, ParamSpec

spec = CommandSpec(
    name="show-sale",
    description="Resolve one sale and optionally quote a purchase.",
    module="scripts.show_sale",
    params=(
        ParamSpec("--sale-id", "str", "Sale object id.", required=True),
        ParamSpec("--amount", "int", "Units to quote at the truncated unit price."),
        *LEDGER_PARAMS,
    ),
    returns="JSON summary with the sale, its price display and an optional quote; status not_found when missing.",
    example="show-sale --sale-id 0xabc --amount 3",
)
