#!/usr/bin/env -S python3 -B -u
"""
Authorization gate for chat operators.

The first sender ever seen becomes the first trusted operator. After that,
only senders already in the set may issue commands; trusted operators add
others with the `master` command.
"""

from typing import Callable, Iterable, List, Optional

from .exceptions import AuthorizationError
from .structured_logging import get_logger


class OperatorSet:
    """Trusted operator identities for the process lifetime."""

    def __init__(self, operators: Optional[Iterable[str]] = None):
        self._operators: List[str] = []
        for operator in operators or ():
            self.add(operator)

    def add(self, identity: str) -> bool:
        """Add an identity. Returns False if it was already trusted."""
        if identity in self._operators:
            return False
        self._operators.append(identity)
        return True

    def __contains__(self, identity: str) -> bool:
        return identity in self._operators

    def __len__(self) -> int:
        return len(self._operators)

    def __iter__(self):
        return iter(list(self._operators))


class AuthorizationGate:
    """Checks senders against the operator set, bootstrapping it if empty."""

    def __init__(self, operators: OperatorSet, verbose_level: Optional[int] = None):
        self.operators = operators
        self.logger = get_logger(__name__, verbose_level)

    def authorize(self, sender: str, notify: Callable[[str], None]) -> None:
        """
        Authorize a sender or raise.

        Args:
            sender: Identity of the message author
            notify: Sends a reply to the originating conversation

        Raises:
            AuthorizationError: If the sender is not trusted
        """
        if len(self.operators) == 0:
            self.operators.add(sender)
            self.logger.info(f"Bootstrapped trust: {sender} is the first operator")
            notify(f"{sender} has become my first master")
            return

        if sender not in self.operators:
            raise AuthorizationError(sender)

    def is_authorized(self, sender: str, notify: Callable[[str], None]) -> bool:
        """Boolean form of `authorize`; rejected senders are told so."""
        try:
            self.authorize(sender, notify)
        except AuthorizationError as e:
            self.logger.warning(f"Rejected message from untrusted sender {sender}")
            notify(e.reply_text())
            return False
        return True
