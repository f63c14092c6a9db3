"""
Structured Exception Hierarchy for the Netem Bot

This module provides the exception hierarchy used by the command handlers,
the dispatcher and the process bootstrap. Every error carries the exact text
that is replied to the operator, plus optional details for verbose logging.

Key Features:
- Structured exceptions for each failure category of the command protocol
- Operator-facing reply text kept separate from debugging details
- Exit codes for failures detected at process start-up
- Consistent error reporting across handlers, transport and CLI
"""

import sys
import traceback
from typing import Optional, Dict, Any, List
from enum import IntEnum


class ErrorCode(IntEnum):
    """Standard exit codes for the application."""
    SUCCESS = 0
    NOT_FOUND = 2
    INVALID_INPUT = 10
    CONFIGURATION_ERROR = 11
    NETWORK_ERROR = 12
    PERMISSION_ERROR = 13
    EXTERNAL_TOOL_ERROR = 14
    INTERNAL_ERROR = 15


class NetemBotError(Exception):
    """
    Base exception class for all netem bot errors.

    The message is the text replied to the operator verbatim. Suggestions and
    details only show up in logs and in command line error output.
    """

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """
        Initialize bot error with structured information.

        Args:
            message: Operator-facing error message
            suggestion: Suggested action to resolve the error
            error_code: Exit code for the error
            details: Additional error details (shown only in verbose mode)
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def reply_text(self) -> str:
        """Text sent back to the originating conversation."""
        return self.message

    def format_error(self, verbose_level: int = 0) -> str:
        """
        Format error message based on verbosity level.

        Args:
            verbose_level: 0=basic, 1=verbose, 2=debug, 3=full details

        Returns:
            Formatted error message
        """
        lines = [f"Error: {self.message}"]

        if self.suggestion:
            lines.append(f"Suggestion: {self.suggestion}")

        if verbose_level >= 1 and self.details:
            lines.append("\nDetails:")
            for key, value in self.details.items():
                lines.append(f"  {key}: {value}")

        if verbose_level >= 2 and self.cause:
            lines.append(f"\nCaused by: {type(self.cause).__name__}: {str(self.cause)}")

        if verbose_level >= 3:
            lines.append("\nStack trace:")
            tb = traceback.format_exc()
            if tb and tb != 'NoneType: None\n':
                lines.append(tb)
            else:
                lines.append("(No active exception - stack trace not available)")

        return "\n".join(lines)


# Operator input errors

class UsageError(NetemBotError):
    """Raised when a required argument is missing or malformed."""

    def __init__(self, message: str, usage: Optional[str] = None, **kwargs):
        if usage:
            details = kwargs.get('details', {})
            details['usage'] = usage
            kwargs['details'] = details
        kwargs.setdefault('error_code', ErrorCode.INVALID_INPUT)
        super().__init__(message=message, **kwargs)


class RangeError(NetemBotError):
    """Raised when a numeric argument is outside its accepted bounds."""

    def __init__(self, message: str, field: str, value: Any, low: Any, high: Any, **kwargs):
        details = kwargs.get('details', {})
        details.update({
            "field": field,
            "value": value,
            "accepted": f"{low}..{high}"
        })
        kwargs['details'] = details
        kwargs.setdefault('error_code', ErrorCode.INVALID_INPUT)
        super().__init__(message=message, **kwargs)


# Lookup errors

class NotFoundError(NetemBotError):
    """Base class for lookups that did not resolve."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('error_code', ErrorCode.NOT_FOUND)
        super().__init__(message=message, **kwargs)


class VlanNotFoundError(NotFoundError):
    """Raised when no interface carries the requested VLAN tag."""

    def __init__(self, vlan: int, available_interfaces: Optional[List[str]] = None, **kwargs):
        details = kwargs.get('details', {})
        details.update({
            "vlan": vlan,
            "available_interfaces": available_interfaces
        })
        kwargs['details'] = details
        super().__init__(
            message=f"Error: VLAN {vlan} is not found. Run \"ip\" for more info",
            **kwargs
        )
        self.vlan = vlan
        self.suggestion = "VLAN sub-interfaces are expected to be named <base>.<vlan>"


class RedirectDeviceNotFoundError(NotFoundError):
    """Raised when the filter table of an interface has no IFB redirect."""

    def __init__(self, interface: str, filter_table: str, **kwargs):
        details = kwargs.get('details', {})
        details.update({
            "interface": interface,
            "filter_table": filter_table
        })
        kwargs['details'] = details
        super().__init__(
            message=f"Missing IFB device for {interface} in {filter_table.strip() or '(empty filter table)'}",
            **kwargs
        )
        self.interface = interface
        self.suggestion = (
            "Ingress shaping needs an ingress qdisc on the interface with a mirred "
            "action redirecting to an ifb device"
        )


# Authorization errors

class AuthorizationError(NetemBotError):
    """Raised when a sender is not in the trusted operator set."""

    def __init__(self, sender: str, **kwargs):
        kwargs.setdefault('error_code', ErrorCode.PERMISSION_ERROR)
        super().__init__(
            message=f"{sender} is not my master",
            details={"sender": sender},
            **kwargs
        )
        self.sender = sender


# Execution errors

class ExternalToolError(NetemBotError):
    """Raised when an external shaping invocation fails."""

    def __init__(self, command: List[str], reason: str, exit_code: Optional[int] = None, **kwargs):
        kwargs.setdefault('error_code', ErrorCode.EXTERNAL_TOOL_ERROR)
        super().__init__(
            message=reason,
            details={
                "command": " ".join(command),
                "exit_code": exit_code
            },
            **kwargs
        )
        self.command = command
        self.exit_code = exit_code
        self.suggestion = (
            "Check that iproute2 is installed and that the bot runs with "
            "CAP_NET_ADMIN (or set tc.use_sudo in the configuration)"
        )


class InventoryError(NetemBotError):
    """Raised when the local interface table cannot be enumerated."""

    def __init__(self, reason: str, **kwargs):
        kwargs.setdefault('error_code', ErrorCode.NETWORK_ERROR)
        super().__init__(message=f"Error listing interfaces: {reason}", **kwargs)


class LoopDetectedError(NetemBotError):
    """Raised when a handler did not consume any token of the stream."""

    def __init__(self, command: str, remaining_before: int, remaining_after: int, **kwargs):
        super().__init__(
            message=f"Possible loop in command {command}, remaining tokens did not shrink",
            error_code=ErrorCode.INTERNAL_ERROR,
            details={
                "command": command,
                "remaining_before": remaining_before,
                "remaining_after": remaining_after
            },
            **kwargs
        )
        self.command = command


# Configuration and transport errors

class ConfigurationError(NetemBotError):
    """Raised when there are configuration-related issues."""

    def __init__(self, message: str, config_file: Optional[str] = None, **kwargs):
        suggestion = "Check your configuration file format and values."
        if config_file:
            suggestion += f" Configuration file: {config_file}"
            kwargs['details'] = kwargs.get('details', {})
            kwargs['details']['config_file'] = config_file
        super().__init__(
            message=message,
            suggestion=suggestion,
            error_code=ErrorCode.CONFIGURATION_ERROR,
            **kwargs
        )


class TransportError(NetemBotError):
    """Raised when the chat API cannot be reached or rejects a request."""

    def __init__(self, method: str, reason: str, **kwargs):
        kwargs.setdefault('error_code', ErrorCode.NETWORK_ERROR)
        super().__init__(
            message=f"Telegram API call {method} failed: {reason}",
            details={"method": method},
            **kwargs
        )
        self.method = method


# Error Handler Utility

class ErrorHandler:
    """Utility class for consistent error handling of the command line entry points."""

    @staticmethod
    def handle_error(error: Exception, verbose_level: int = 0) -> int:
        """
        Handle an error and return appropriate exit code.

        Args:
            error: The exception to handle
            verbose_level: Verbosity level (0-3)

        Returns:
            Exit code for the application
        """
        if isinstance(error, NetemBotError):
            print(error.format_error(verbose_level), file=sys.stderr)
            return error.error_code

        print("Error: An unexpected error occurred", file=sys.stderr)
        print("Suggestion: This might be a bug. Please report it with the full error output.", file=sys.stderr)

        if verbose_level >= 1:
            print(f"\nError type: {type(error).__name__}", file=sys.stderr)
            print(f"Error message: {str(error)}", file=sys.stderr)

        if verbose_level >= 3:
            print("\nStack trace:", file=sys.stderr)
            traceback.print_exc(file=sys.stderr)

        return ErrorCode.INTERNAL_ERROR

    @staticmethod
    def wrap_main(main_func):
        """
        Decorator to wrap main functions with error handling.

        Usage:
            @ErrorHandler.wrap_main
            def main():
                ...
        """
        def wrapper(*args, **kwargs):
            try:
                return main_func(*args, **kwargs)
            except KeyboardInterrupt:
                print("\nOperation cancelled by user", file=sys.stderr)
                return ErrorCode.SUCCESS
            except Exception as e:
                verbose_level = kwargs.get('verbose_level', 0)
                return ErrorHandler.handle_error(e, verbose_level)

        wrapper.__name__ = main_func.__name__
        wrapper.__doc__ = main_func.__doc__
        return wrapper
