#!/usr/bin/env -S python3 -B -u
"""
Command registry and per-message dispatch loop.

A message may chain several commands ("vlan 10 out 50 5"). The dispatcher
takes one keyword at a time, hands the rest of the stream to the matching
handler and sends each handler's reply on its own. A handler that does not
make the stream shrink aborts the rest of the message.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .authorization import OperatorSet
from .exceptions import LoopDetectedError
from .impairment import ImpairmentApplier
from .inventory import InterfaceInventory
from .models import IncomingMessage
from .structured_logging import get_logger
from .tokens import TokenStream
from .vlan_selector import VlanSelector


SendFunc = Callable[[Any, str], None]


@dataclass
class SessionContext:
    """
    Shared dispatch state handed to every handler.

    One context serves all operators; messages are dispatched one at a
    time, so handlers never see concurrent mutation.
    """
    inventory: InterfaceInventory
    vlans: VlanSelector
    applier: ImpairmentApplier
    operators: OperatorSet
    message: Optional[IncomingMessage] = None


class CommandRegistry:
    """Case-insensitive mapping of command keywords to handlers."""

    def __init__(self):
        self._handlers: Dict[str, Any] = {}
        self._frozen = False

    def add(self, key: str, handler) -> None:
        """
        Register a handler exposing `handle(context, tokens) -> str`.

        Raises:
            ValueError: Duplicate keyword
            RuntimeError: Registry already frozen
        """
        if self._frozen:
            raise RuntimeError(f"Cannot register {key!r}: command registry is frozen")
        name = key.lower()
        if name in self._handlers:
            raise ValueError(f"Command {name!r} is already registered")
        self._handlers[name] = handler

    def freeze(self) -> None:
        """Refuse further registrations."""
        self._frozen = True

    def get(self, key: str):
        return self._handlers.get(key.lower())

    def names(self) -> List[str]:
        return sorted(self._handlers)

    def __contains__(self, key: str) -> bool:
        return key.lower() in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def help_text(self) -> str:
        """List of known commands."""
        return "Known commands:\n  - " + "\n  - ".join(self.names())


class Dispatcher:
    """Runs the dispatch loop for one authorized message at a time."""

    def __init__(self, registry: CommandRegistry, verbose_level: Optional[int] = None):
        self.registry = registry
        self.logger = get_logger(__name__, verbose_level)

    def dispatch(self, context: SessionContext, message: IncomingMessage, send: SendFunc) -> int:
        """
        Execute every command of a message, sending one reply per command.

        Args:
            context: Shared session state
            message: The authorized message
            send: Delivers reply text to a conversation

        Returns:
            Number of commands that ran to completion
        """
        tokens = TokenStream.from_text(message.text)
        context.message = message
        completed = 0

        while tokens.remaining() > 0:
            # Sampled before the keyword is consumed: every command makes
            # progress by at least its own keyword.
            remaining_before = tokens.remaining()
            order = tokens.next().lower()

            handler = self.registry.get(order)
            if handler is None:
                self.logger.info(f"Unknown command {order!r}")
                send(message.conversation_id, f"Command {order} is not known.\n{self.registry.help_text()}")
                break

            self.logger.debug(f"Dispatching {order}", remaining=tokens.remaining())
            try:
                reply = handler.handle(context, tokens)
            except Exception as e:
                self.logger.exception(f"Command {order} raised {type(e).__name__}: {e}")
                reply = f"Command {order} failed: {e}"

            remaining_after = tokens.remaining()
            if remaining_after >= remaining_before:
                loop = LoopDetectedError(order, remaining_before, remaining_after)
                self.logger.error(loop.message, **loop.details)
                send(message.conversation_id, "\n".join(part for part in (reply, loop.reply_text()) if part))
                break

            send(message.conversation_id, reply)
            completed += 1

        context.message = None
        return completed
