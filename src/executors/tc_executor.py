#!/usr/bin/env -S python3 -B -u
"""
Traffic Control Executor - Shaping Facility Boundary

This module runs iproute2 `tc` on behalf of the impairment handlers. It is
the only place where the bot touches the host's queueing disciplines.

Key features:
- Runs `tc` synchronously, optionally through `sudo -n`
- Captures stdout and failure reason instead of raising for qdisc changes
- Lists the filter table used to find the IFB redirect device of a VLAN
- No timeout unless one is configured: a hung `tc` blocks the dispatcher

Author: Network Operations
License: MIT
"""

import subprocess
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..core.exceptions import ExternalToolError
from ..core.models import ShapingResult
from ..core.structured_logging import get_logger


class ShapingFacility(ABC):
    """Interface of the external traffic shaping engine."""

    @abstractmethod
    def run_shaping_command(self, argv: List[str]) -> ShapingResult:
        """Run one shaping invocation (arguments after the tool name)."""

    @abstractmethod
    def query_filter_table(self, interface: str) -> str:
        """Return the textual filter table of an interface, or raise ExternalToolError."""


class TcExecutor(ShapingFacility):
    """
    Executes `tc` on the local host.

    Attributes:
        binary (str): tc executable name or path
        use_sudo (bool): Prefix invocations with `sudo -n`
        filter_parent (str): Parent listed when querying redirect filters
        timeout (float): Seconds before an invocation is abandoned, None for no limit
    """

    FILTER_PARENT_KEYWORDS = ('root', 'ingress', 'egress')

    def __init__(self, tc_config: Optional[Dict[str, Any]] = None, verbose_level: Optional[int] = None):
        """
        Initialize the executor.

        Args:
            tc_config: The `tc` section of the bot configuration (optional)
            verbose_level: Verbosity level for logging
        """
        tc_config = tc_config or {}
        self.binary = tc_config.get('binary') or 'tc'
        self.use_sudo = bool(tc_config.get('use_sudo', False))
        self.filter_parent = tc_config.get('filter_parent') or 'root'
        self.timeout = tc_config.get('timeout')
        self.logger = get_logger(__name__, verbose_level)

    def build_command(self, argv: List[str]) -> List[str]:
        """Full command line for a tc invocation."""
        cmd = []
        if self.use_sudo:
            cmd.extend(['sudo', '-n'])
        cmd.append(self.binary)
        cmd.extend(argv)
        return cmd

    def run_shaping_command(self, argv: List[str]) -> ShapingResult:
        """
        Run tc and capture its output.

        Args:
            argv: tc arguments, e.g. ['qdisc', 'del', 'dev', 'eth0.10', 'root']

        Returns:
            ShapingResult with stdout, success flag and failure reason
        """
        cmd = self.build_command(argv)
        try:
            with self.logger.timer(" ".join(cmd)):
                result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError as e:
            self.logger.log_command_execution(cmd, success=False, error=str(e))
            return ShapingResult(argv=list(argv), success=False, error=f"{cmd[0]} not found: {e}")
        except subprocess.TimeoutExpired:
            self.logger.log_command_execution(cmd, success=False, timeout=self.timeout)
            return ShapingResult(argv=list(argv), success=False,
                                 error=f"timed out after {self.timeout} seconds")

        success = result.returncode == 0
        error = ''
        if not success:
            error = result.stderr.strip() or f"exit status {result.returncode}"
        self.logger.log_command_execution(cmd, success=success, exit_code=result.returncode)
        return ShapingResult(argv=list(argv), stdout=result.stdout, success=success, error=error)

    def filter_show_arguments(self, interface: str) -> List[str]:
        """Arguments listing the filters attached to an interface."""
        argv = ['filter', 'show', 'dev', interface]
        if self.filter_parent in self.FILTER_PARENT_KEYWORDS:
            argv.append(self.filter_parent)
        else:
            argv.extend(['parent', self.filter_parent])
        return argv

    def query_filter_table(self, interface: str) -> str:
        """
        List the filter table of an interface.

        Raises:
            ExternalToolError: If tc fails
        """
        argv = self.filter_show_arguments(interface)
        result = self.run_shaping_command(argv)
        if not result.success:
            raise ExternalToolError(self.build_command(argv), f"Error at filter show: {result.error}")
        return result.stdout
