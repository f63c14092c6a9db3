"""
netembot.commands - Command handlers for the chat protocol

This package contains one handler class per operator command:
- ip: list IPv4 addresses of local interfaces
- vlan: select the VLAN sub-interface to impair
- out / in: egress / ingress impairment on the selected VLAN
- master: trust another operator
"""

from typing import Optional

from .base import BaseCommandHandler
from .ip import IpCommand
from .vlan import VlanCommand, InCommand, OutCommand
from .master import MasterCommand


DEFAULT_COMMANDS = (IpCommand, VlanCommand, OutCommand, InCommand, MasterCommand)


def register_default_commands(registry, verbose_level: Optional[int] = None) -> None:
    """Register every built-in command and freeze the registry."""
    for handler_class in DEFAULT_COMMANDS:
        handler = handler_class(verbose_level)
        registry.add(handler.name, handler)
    registry.freeze()


__all__ = [
    'BaseCommandHandler',
    'IpCommand', 'VlanCommand', 'OutCommand', 'InCommand', 'MasterCommand',
    'DEFAULT_COMMANDS', 'register_default_commands',
]
