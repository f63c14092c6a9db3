#!/usr/bin/env -S python3 -B -u
"""
Interface inventory.

Snapshot of local interface names and their IPv4 addresses, rebuilt from
the live OS interface table every time it is refreshed.
"""

import socket
from typing import Callable, Dict, List, Optional

import psutil

from .exceptions import InventoryError


def list_interface_addresses() -> Dict[str, List[str]]:
    """
    Enumerate IPv4 addresses bound to local interfaces.

    Returns:
        Mapping of interface name to its IPv4 addresses, in kernel order.
        Interfaces without IPv4 addresses are left out.

    Raises:
        InventoryError: If the interface table cannot be read
    """
    try:
        addrs = psutil.net_if_addrs()
    except (OSError, psutil.Error) as e:
        raise InventoryError(str(e), cause=e)

    result = {}
    for name, entries in addrs.items():
        ips = [entry.address for entry in entries if entry.family == socket.AF_INET]
        if ips:
            result[name] = ips
    return result


class InterfaceInventory:
    """
    Interface name to IPv4 address mapping.

    Attributes:
        current (dict): Last snapshot, replaced wholesale on refresh
    """

    def __init__(self, lister: Optional[Callable[[], Dict[str, List[str]]]] = None):
        self._lister = lister or list_interface_addresses
        self.current: Dict[str, List[str]] = {}

    def refresh(self) -> Dict[str, List[str]]:
        """Rebuild the snapshot from the interface table."""
        snapshot = self._lister()
        self.current = {name: list(ips) for name, ips in snapshot.items() if ips}
        return self.current

    def find_vlan_interface(self, vlan: int) -> Optional[str]:
        """Return the first interface (by name) whose name ends in .<vlan>."""
        suffix = f".{vlan}"
        for name in sorted(self.current):
            if name.endswith(suffix):
                return name
        return None

    def format(self) -> str:
        """One `name: ip1, ip2` line per interface, sorted by name."""
        return "\n".join(
            f"{name}: {', '.join(ips)}" for name, ips in sorted(self.current.items())
        )
