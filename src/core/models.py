#!/usr/bin/env -S python3 -B -u
"""
Data models for the netem bot.

This module contains the small records exchanged between the transport,
the dispatcher, the VLAN selector and the shaping executor.
"""

from dataclasses import dataclass, field
from typing import Any, List


@dataclass(frozen=True)
class IncomingMessage:
    """One text message delivered by a transport."""
    sender: str
    conversation_id: Any
    text: str


@dataclass
class ImpairmentParams:
    """
    Network impairment requested by an operator.

    Attributes:
        delay: Delay in milliseconds (0-4094)
        jitter: Jitter in milliseconds (0-4094), normal distribution
        loss: Packet loss percentage (0.0-100.0)
        correlation: Loss correlation percentage (0.0-100.0)
    """
    delay: int = 0
    jitter: int = 0
    loss: float = 0.0
    correlation: float = 0.0

    @property
    def is_noop(self) -> bool:
        """True when neither delay nor loss would be applied."""
        return self.delay == 0 and self.loss == 0

    def summary(self, interface: str) -> str:
        """Human readable description of the effective policy."""
        return (
            f"Policy for interface {interface}: "
            f"{self.delay}ms delay ({self.jitter}ms jitter), "
            f"{self.loss:g}% PL ({self.correlation:g}% correlation)"
        )


@dataclass
class VlanSelection:
    """
    The VLAN currently targeted by `in` and `out`.

    Attributes:
        vlan: Selected VLAN number, 0 when nothing is selected
        device: Interface carrying the VLAN (e.g. eth0.10)
        redirect_device: IFB device receiving the VLAN's ingress traffic,
            empty when ingress shaping is unavailable
    """
    vlan: int = 0
    device: str = ''
    redirect_device: str = ''

    @property
    def selected(self) -> bool:
        return self.vlan != 0

    @property
    def ingress_available(self) -> bool:
        return bool(self.redirect_device)


@dataclass
class ShapingResult:
    """Outcome of one external shaping invocation."""
    argv: List[str] = field(default_factory=list)
    stdout: str = ''
    success: bool = True
    error: str = ''
