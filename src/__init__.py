#!/usr/bin/env -S python3 -B -u
"""
netembot - Network Impairment Bot

Chat-operated control surface for netem delay, jitter and packet loss on
802.1Q VLAN sub-interfaces.
"""

__version__ = '1.0.0'
__author__ = 'Network Operations'
__license__ = 'MIT'

# Package metadata
__all__ = [
    'core',
    'commands',
    'executors',
    'transport',
    'shell',
]
