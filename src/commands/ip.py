#!/usr/bin/env -S python3 -B -u
"""
`ip` command: list IPv4 addresses of local interfaces.
"""

from .base import BaseCommandHandler


class IpCommand(BaseCommandHandler):
    """Handler replying with one `name: ip1, ip2` line per interface."""

    name = 'ip'
    usage = 'ip'

    def _handle_command_impl(self, context, tokens) -> str:
        context.inventory.refresh()
        text = context.inventory.format()
        if not text:
            return "No interface has an IPv4 address"
        return text
