from __future__ import annotations

from cli.commands.common_params import LEDGER_PARAMS
from cli.commands.specs import CommandSpec

spec = CommandSpec(
    name="link-purchases",
    description="Group recent purchase transactions by the sale they touched.",
    module="scripts.link_purchases",
    params=LEDGER_PARAMS,
    returns="JSON summary keyed by sale id; unmatched purchases land under 'unknown'.",
    example="link-purchases --log-level INFO",
)
