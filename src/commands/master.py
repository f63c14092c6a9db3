#!/usr/bin/env -S python3 -B -u
"""
`master` command: trust another operator.
"""

from ..core.exceptions import UsageError
from .base import BaseCommandHandler


class MasterCommand(BaseCommandHandler):
    """Add an identity to the trusted operator set."""

    name = 'master'
    usage = 'master <identity>'

    def _handle_command_impl(self, context, tokens) -> str:
        if tokens.remaining() <= 0:
            raise UsageError("Error: must provide the operator identity (master <identity>)",
                             usage=self.usage)
        identity = tokens.next()
        if not context.operators.add(identity):
            return f"Username {identity} is already a master"

        added_by = context.message.sender if context.message else 'unknown'
        self.logger.info(f"Operator {identity} trusted by {added_by}")
        return f"Username {identity} added as master"
