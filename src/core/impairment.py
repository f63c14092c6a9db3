#!/usr/bin/env -S python3 -B -u
"""
Impairment parameters and their application with netem.

Key Features:
- Positional parameter parsing with speculative optional arguments
- Deterministic `tc qdisc` invocation sequence (clear, then add)
- Failures of the external tool folded into the reply text
"""

import re
from typing import List, Optional, Tuple

from .exceptions import UsageError, RangeError
from .models import ImpairmentParams, VlanSelection
from .structured_logging import get_logger
from .tokens import TokenStream


MAX_DELAY_MS = 4094
MAX_PERCENT = 100.0

IMPAIRMENT_USAGE = "[in|out] <delay_ms> <jitter_ms> <PL %> <correlation %>"

_INT_RE = re.compile(r'[+-]?[0-9]+')


def parse_int(token: str) -> int:
    """Parse a plain ASCII decimal integer."""
    if not _INT_RE.fullmatch(token):
        raise ValueError(f"invalid syntax: {token!r}")
    return int(token)


def parse_percent(token: str) -> float:
    """Parse a percentage value. NaN and infinities parse but never pass range checks."""
    value = token[:-1] if token.endswith('%') and token != '%' else token
    # float() also takes digit separators and non-ASCII digits
    if '_' in value or not value.isascii():
        raise ValueError(f"invalid syntax: {token!r}")
    return float(value)


def _speculate(tokens: TokenStream, parser) -> Tuple[bool, Optional[object]]:
    """
    Try to parse the next token; leave the cursor untouched if it does not parse.

    Returns:
        (parsed, value)
    """
    if tokens.remaining() <= 0:
        return False, None
    mark = tokens.position
    token = tokens.next()
    try:
        return True, parser(token)
    except ValueError:
        tokens.restore(mark)
        return False, None


def skip_impairment_arguments(tokens: TokenStream) -> int:
    """
    Consume the arguments of a rejected `in`/`out` without validating them.

    Uses the same speculative parse as `parse_impairment_params`, so the
    cursor ends up on the next command keyword.

    Returns:
        Number of tokens consumed
    """
    start = tokens.position
    for parser in (parse_int, parse_int, parse_percent, parse_percent):
        parsed, _ = _speculate(tokens, parser)
        if not parsed:
            break
    return tokens.position - start


def parse_impairment_params(selection: VlanSelection, tokens: TokenStream) -> ImpairmentParams:
    """
    Read `<delay_ms> [jitter_ms] [loss%] [correlation%]` from the stream.

    Optional arguments that do not parse are left in the stream, and parsing
    stops there, so that `out 50 vlan 20` applies the delay and then runs
    `vlan 20`.

    Raises:
        UsageError: No VLAN selected, missing or non-numeric delay
        RangeError: A value outside its accepted bounds
    """
    if not selection.selected:
        skip_impairment_arguments(tokens)
        raise UsageError("No VLAN selected. Run \"vlan\" for more info")
    if tokens.remaining() <= 0:
        raise UsageError(
            f"Error: must at least provide delay (ms). Format: {IMPAIRMENT_USAGE}",
            usage=IMPAIRMENT_USAGE
        )

    params = ImpairmentParams()

    token = tokens.next()
    try:
        delay = parse_int(token)
    except ValueError as e:
        raise UsageError(f"delay is not an int: {e}", usage=IMPAIRMENT_USAGE, cause=e)
    if not 0 <= delay <= MAX_DELAY_MS:
        raise RangeError(
            f"Error: Delay must be between 0 and {MAX_DELAY_MS} milliseconds",
            field="delay", value=delay, low=0, high=MAX_DELAY_MS
        )
    params.delay = delay

    parsed, jitter = _speculate(tokens, parse_int)
    if not parsed:
        return params
    if not 0 <= jitter <= MAX_DELAY_MS:
        raise RangeError(
            f"Error: Jitter must be between 0 and {MAX_DELAY_MS} milliseconds",
            field="jitter", value=jitter, low=0, high=MAX_DELAY_MS
        )
    params.jitter = jitter

    parsed, loss = _speculate(tokens, parse_percent)
    if not parsed:
        return params
    if not 0.0 <= loss <= MAX_PERCENT:
        raise RangeError(
            "Error: Packet loss must be between 0.0 and 100.0 percent",
            field="loss", value=loss, low=0.0, high=MAX_PERCENT
        )
    params.loss = loss

    parsed, correlation = _speculate(tokens, parse_percent)
    if not parsed:
        return params
    if not 0.0 <= correlation <= MAX_PERCENT:
        raise RangeError(
            "Error: Correlation must be between 0.0 and 100.0 percent",
            field="correlation", value=correlation, low=0.0, high=MAX_PERCENT
        )
    params.correlation = correlation

    return params


def clear_arguments(interface: str) -> List[str]:
    """tc arguments removing the root qdisc of an interface."""
    return ['qdisc', 'del', 'dev', interface, 'root']


def netem_arguments(interface: str, params: ImpairmentParams) -> List[str]:
    """
    tc arguments installing a netem root qdisc.

    The delay clause is present iff delay != 0, with a normally distributed
    jitter sub-clause iff jitter != 0. The loss clause is present iff
    loss != 0, with a correlation sub-clause iff correlation != 0.
    """
    argv = ['qdisc', 'add', 'dev', interface, 'root', 'netem']
    if params.delay != 0:
        argv.extend(['delay', f"{params.delay}ms"])
        if params.jitter != 0:
            argv.extend([f"{params.jitter}ms", 'distribution', 'normal'])
    if params.loss != 0:
        argv.extend(['loss', f"{params.loss:g}%"])
        if params.correlation != 0:
            argv.append(f"{params.correlation:g}%")
    return argv


class ImpairmentApplier:
    """Turns validated parameters into tc invocations against one interface."""

    def __init__(self, facility, verbose_level: Optional[int] = None):
        """
        Args:
            facility: ShapingFacility running the invocations
            verbose_level: Verbosity level for logging
        """
        self.facility = facility
        self.logger = get_logger(__name__, verbose_level)

    def apply(self, interface: str, params: ImpairmentParams) -> str:
        """
        Clear the interface's root qdisc and install the requested policy.

        A failed clear is informational only (there may be no qdisc to
        delete). A failed add is reported in the reply text.

        Returns:
            Combined output of the invocations plus a policy summary
        """
        messages = []

        cleared = self.facility.run_shaping_command(clear_arguments(interface))
        if not cleared.success:
            messages.append(f"(Ignore) Error at qdisc del: {cleared.error}")
        messages.append(f"Cleared interface {interface}")
        if cleared.stdout.strip():
            messages.append(cleared.stdout.strip())

        if params.is_noop:
            self.logger.info(f"Cleared shaping policy on {interface}")
            messages.append(f"No impairment requested, {interface} left without policy")
            return "\n".join(messages)

        messages.append(params.summary(interface))
        added = self.facility.run_shaping_command(netem_arguments(interface, params))
        if not added.success:
            self.logger.error(f"qdisc add failed on {interface}: {added.error}")
            messages.append(f"Error at qdisc add: {added.error}")
        else:
            self.logger.info(params.summary(interface))
        if added.stdout.strip():
            messages.append(added.stdout.strip())

        return "\n".join(messages)
