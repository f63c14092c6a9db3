#!/usr/bin/env -S python3 -B -u
"""
Token stream for operator instructions.

One incoming message is split on whitespace into a cursor-addressable
sequence of tokens. Handlers consume their arguments from the stream and
leave the cursor on the next command keyword.
"""

from typing import List


class TokenStream:
    """Ordered tokens plus a cursor in [0, len(tokens)]."""

    def __init__(self, tokens: List[str]):
        self._tokens = list(tokens)
        self._cursor = 0

    @classmethod
    def from_text(cls, text: str) -> 'TokenStream':
        """Build a stream from a free-text instruction line."""
        return cls((text or '').split())

    def next(self) -> str:
        """Return the token at the cursor and advance, or '' when exhausted."""
        if self._cursor >= len(self._tokens):
            return ''
        token = self._tokens[self._cursor]
        self._cursor += 1
        return token

    def back(self) -> None:
        """Un-consume the last token. No-op at the start of the stream."""
        if self._cursor > 0:
            self._cursor -= 1

    def remaining(self) -> int:
        """Number of tokens not consumed yet."""
        return len(self._tokens) - self._cursor

    @property
    def position(self) -> int:
        return self._cursor

    def restore(self, position: int) -> None:
        """Move the cursor back to a position saved with `position`."""
        self._cursor = max(0, min(position, len(self._tokens)))

    def __len__(self) -> int:
        return len(self._tokens)

    def __repr__(self) -> str:
        return f"TokenStream({self._tokens!r}, cursor={self._cursor})"
