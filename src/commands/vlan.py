#!/usr/bin/env -S python3 -B -u
"""
VLAN commands: `vlan` selects the target, `out` and `in` impair it.
"""

from ..core.exceptions import UsageError
from ..core.impairment import IMPAIRMENT_USAGE, parse_impairment_params, skip_impairment_arguments
from .base import BaseCommandHandler


class VlanCommand(BaseCommandHandler):
    """Select the VLAN that `in` and `out` act on."""

    name = 'vlan'
    usage = 'vlan <1-4094>'

    def _handle_command_impl(self, context, tokens) -> str:
        return context.vlans.select(tokens)


class OutCommand(BaseCommandHandler):
    """Egress impairment on the selected VLAN's interface."""

    name = 'out'
    usage = 'out <delay_ms> [jitter_ms] [loss%] [correlation%]'

    def _handle_command_impl(self, context, tokens) -> str:
        selection = context.vlans.selection
        params = parse_impairment_params(selection, tokens)
        return context.applier.apply(selection.device, params)


class InCommand(BaseCommandHandler):
    """Ingress impairment through the selected VLAN's IFB device."""

    name = 'in'
    usage = 'in <delay_ms> [jitter_ms] [loss%] [correlation%]'

    def _handle_command_impl(self, context, tokens) -> str:
        selection = context.vlans.selection
        if not selection.ingress_available:
            skip_impairment_arguments(tokens)
            raise UsageError(
                "Ingress shaping is not available for the current VLAN (no IFB device assigned)",
                usage=IMPAIRMENT_USAGE
            )
        params = parse_impairment_params(selection, tokens)
        return context.applier.apply(selection.redirect_device, params)
