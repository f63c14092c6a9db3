#!/usr/bin/env -S python3 -B -u
"""
VLAN selection and ingress redirect resolution.

Selecting a VLAN binds the interface named `<base>.<vlan>` as the egress
target and, when the interface mirrors its ingress traffic to an IFB
device, that device as the ingress target.
"""

import re
from typing import Optional

from .exceptions import (
    UsageError, RangeError, VlanNotFoundError,
    RedirectDeviceNotFoundError, ExternalToolError
)
from .impairment import parse_int
from .inventory import InterfaceInventory
from .models import VlanSelection
from .structured_logging import get_logger
from .tokens import TokenStream


MIN_VLAN = 1
MAX_VLAN = 4094

_REDIRECT_RE = re.compile(r'Egress Redirect to device (ifb\d+)')


def find_redirect_device(filter_table: str) -> Optional[str]:
    """Extract the IFB device from a `tc filter show` listing."""
    match = _REDIRECT_RE.search(filter_table)
    return match.group(1) if match else None


class VlanSelector:
    """
    Holds the single live VLAN selection.

    Attributes:
        selection (VlanSelection): Current selection, replaced on each successful `vlan`
        inventory (InterfaceInventory): Refreshed before every lookup
        facility (ShapingFacility): Queried for the redirect filter
    """

    def __init__(self, inventory: InterfaceInventory, facility, verbose_level: Optional[int] = None):
        self.inventory = inventory
        self.facility = facility
        self.selection = VlanSelection()
        self.logger = get_logger(__name__, verbose_level)

    def select(self, tokens: TokenStream) -> str:
        """
        Select the VLAN given as next token.

        The selection is committed as soon as the interface is found. A
        missing redirect device only disables ingress shaping.

        Raises:
            UsageError: Missing or non-numeric VLAN number
            RangeError: VLAN number outside 1-4094
            VlanNotFoundError: No interface ends in .<vlan>
            InventoryError: Interface table could not be read
        """
        if tokens.remaining() < 1:
            raise UsageError("Error: must provide the VLAN number (vlan <vlan_number>)",
                             usage="vlan <vlan_number>")
        token = tokens.next()
        try:
            vlan = parse_int(token)
        except ValueError as e:
            raise UsageError(f"VLAN number is not an int: {e}", usage="vlan <vlan_number>", cause=e)
        if not MIN_VLAN <= vlan <= MAX_VLAN:
            raise RangeError(
                f"Error: VLAN number must be between {MIN_VLAN} and {MAX_VLAN}",
                field="vlan", value=vlan, low=MIN_VLAN, high=MAX_VLAN
            )

        self.inventory.refresh()
        device = self.inventory.find_vlan_interface(vlan)
        if device is None:
            raise VlanNotFoundError(vlan, available_interfaces=sorted(self.inventory.current))

        self.selection = VlanSelection(vlan=vlan, device=device)
        self.logger.info(f"VLAN {vlan} selected on {device}")

        try:
            self.selection.redirect_device = self.resolve_redirect_device(device)
        except (ExternalToolError, RedirectDeviceNotFoundError) as e:
            self.logger.warning(f"Ingress shaping unavailable for VLAN {vlan}: {e.message}")
            return (
                f"VLAN {vlan} selected ({device})\n"
                f"Could not get IFB, ingress shaping disabled: {e.reply_text()}"
            )

        return f"VLAN {vlan} selected ({device}, ingress via {self.selection.redirect_device})"

    def resolve_redirect_device(self, device: str) -> str:
        """
        Find the IFB device receiving the ingress traffic of `device`.

        Raises:
            ExternalToolError: If the filter table cannot be listed
            RedirectDeviceNotFoundError: If no redirect action is configured
        """
        filter_table = self.facility.query_filter_table(device)
        redirect = find_redirect_device(filter_table)
        if redirect is None:
            raise RedirectDeviceNotFoundError(device, filter_table)
        self.logger.debug(f"Redirect device for {device}", redirect=redirect)
        return redirect

    def describe(self) -> str:
        """Short description of the current selection."""
        if not self.selection.selected:
            return "No VLAN selected"
        ingress = self.selection.redirect_device or "unavailable"
        return f"VLAN {self.selection.vlan} on {self.selection.device} (ingress: {ingress})"
