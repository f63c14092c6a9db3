"""
netembot.executors - External tools driven by the bot
"""

from .tc_executor import ShapingFacility, TcExecutor

__all__ = ['ShapingFacility', 'TcExecutor']
