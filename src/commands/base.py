#!/usr/bin/env -S python3 -B -u
"""
Base command handler class for chat commands.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..core.exceptions import NetemBotError
from ..core.structured_logging import get_logger
from ..core.tokens import TokenStream


class BaseCommandHandler(ABC):
    """Base class for all command handlers."""

    name: str = ''
    usage: str = ''

    def __init__(self, verbose_level: Optional[int] = None):
        self.logger = get_logger(f"{__name__}.{self.name or type(self).__name__}", verbose_level)

    def handle(self, context, tokens: TokenStream) -> str:
        """Handle the command and return the reply text."""
        try:
            return self._handle_command_impl(context, tokens)
        except NetemBotError as e:
            self.logger.debug(f"{self.name} rejected", error=e.message, **e.details)
            return e.reply_text()
        except Exception as e:
            self.logger.exception(f"Command {self.name} failed: {e}")
            return f"Command {self.name} failed: {e}"

    @abstractmethod
    def _handle_command_impl(self, context, tokens: TokenStream) -> str:
        """Implementation of command handling - override in subclasses."""
