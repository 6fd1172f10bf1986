from __future__ import annotations

from cli.commands.doctor import spec as doctor_spec
from cli.commands.link_purchases import spec as link_purchases_spec
from cli.commands.list_sales import spec as list_sales_spec
from cli.commands.show_holdings import spec as show_holdings_spec
from cli.commands.show_sale import spec as show_sale_spec
from cli.commands.specs import CommandSpec

COMMAND_SPECS: tuple[CommandSpec, ...] = (
    list_sales_spec,
    show_sale_spec,
    show_holdings_spec,
    link_purchases_spec,
    doctor_spec,
)
