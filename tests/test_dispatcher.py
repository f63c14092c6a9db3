#!/usr/bin/env -S python3 -B -u
"""
Test Suite for the Command Registry and Dispatcher

This module tests:
1. Registry keyword handling (case folding, uniqueness, freezing)
2. Chained commands in one message, one reply each
3. Unknown command help reply
4. Loop detection on handlers that do not consume the stream
"""

import unittest
import os
import sys
from unittest.mock import MagicMock

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.core.dispatcher import CommandRegistry, Dispatcher, SessionContext
from src.core.models import IncomingMessage


class EchoHandler:
    """Consumes a fixed number of arguments and echoes them."""

    def __init__(self, name, arity=0):
        self.name = name
        self.arity = arity
        self.calls = 0

    def handle(self, context, tokens):
        self.calls += 1
        args = [tokens.next() for _ in range(self.arity)]
        return " ".join([self.name] + args)


class RewindHandler:
    """Puts its own keyword back, so the stream never shrinks."""

    def __init__(self):
        self.calls = 0

    def handle(self, context, tokens):
        self.calls += 1
        tokens.back()
        return "rewound"


class GrowHandler:
    """Rewinds the stream to its start, making it grow."""

    def __init__(self):
        self.calls = 0

    def handle(self, context, tokens):
        self.calls += 1
        tokens.restore(0)
        return ""


class FailingHandler:
    def handle(self, context, tokens):
        raise RuntimeError("boom")


def make_context():
    return SessionContext(
        inventory=MagicMock(),
        vlans=MagicMock(),
        applier=MagicMock(),
        operators=MagicMock(),
    )


class TestCommandRegistry(unittest.TestCase):
    """Test registry semantics."""

    def test_keys_are_case_insensitive(self):
        registry = CommandRegistry()
        handler = EchoHandler('ip')
        registry.add('IP', handler)
        self.assertIs(registry.get('ip'), handler)
        self.assertIs(registry.get('Ip'), handler)
        self.assertIn('iP', registry)

    def test_duplicate_keys_rejected(self):
        registry = CommandRegistry()
        registry.add('vlan', EchoHandler('vlan'))
        with self.assertRaises(ValueError):
            registry.add('VLAN', EchoHandler('vlan'))

    def test_frozen_registry_rejects_additions(self):
        registry = CommandRegistry()
        registry.add('ip', EchoHandler('ip'))
        registry.freeze()
        with self.assertRaises(RuntimeError):
            registry.add('vlan', EchoHandler('vlan'))
        self.assertEqual(len(registry), 1)

    def test_help_text_lists_all_names(self):
        registry = CommandRegistry()
        for name in ('vlan', 'ip', 'out'):
            registry.add(name, EchoHandler(name))
        self.assertEqual(registry.names(), ['ip', 'out', 'vlan'])
        self.assertEqual(registry.help_text(), "Known commands:\n  - ip\n  - out\n  - vlan")


class TestDispatcher(unittest.TestCase):
    """Test the per-message dispatch loop."""

    def setUp(self):
        self.registry = CommandRegistry()
        self.ip = EchoHandler('ip')
        self.vlan = EchoHandler('vlan', arity=1)
        self.registry.add('ip', self.ip)
        self.registry.add('vlan', self.vlan)
        self.dispatcher = Dispatcher(self.registry, verbose_level=0)
        self.context = make_context()
        self.sent = []

    def send(self, conversation_id, text):
        self.sent.append((conversation_id, text))

    def dispatch(self, text):
        message = IncomingMessage(sender='alice', conversation_id=42, text=text)
        return self.dispatcher.dispatch(self.context, message, self.send)

    def test_chained_commands_reply_separately(self):
        completed = self.dispatch("vlan 10 ip VLAN 20")
        self.assertEqual(completed, 3)
        self.assertEqual(self.sent, [(42, 'vlan 10'), (42, 'ip'), (42, 'vlan 20')])

    def test_empty_message_sends_nothing(self):
        self.assertEqual(self.dispatch("   "), 0)
        self.assertEqual(self.sent, [])

    def test_unknown_command_lists_commands_and_stops(self):
        completed = self.dispatch("Bogus ip")
        self.assertEqual(completed, 0)
        self.assertEqual(len(self.sent), 1)
        text = self.sent[0][1]
        self.assertTrue(text.startswith("Command bogus is not known."))
        self.assertIn("  - ip", text)
        self.assertIn("  - vlan", text)
        self.assertEqual(self.ip.calls, 0)

    def test_unknown_command_after_known_one(self):
        self.dispatch("ip nope vlan 3")
        self.assertEqual(len(self.sent), 2)
        self.assertEqual(self.sent[0][1], 'ip')
        self.assertIn("Command nope is not known.", self.sent[1][1])
        self.assertEqual(self.vlan.calls, 0)

    def test_handler_without_arguments_is_not_a_loop(self):
        self.dispatch("ip")
        self.assertEqual(self.sent, [(42, 'ip')])

    def test_rewinding_handler_trips_loop_detection_once(self):
        rewind = RewindHandler()
        registry = CommandRegistry()
        registry.add('spin', rewind)
        registry.add('ip', self.ip)
        dispatcher = Dispatcher(registry, verbose_level=0)

        message = IncomingMessage(sender='alice', conversation_id=7, text="spin ip")
        completed = dispatcher.dispatch(self.context, message, self.send)

        self.assertEqual(completed, 0)
        self.assertEqual(rewind.calls, 1)
        self.assertEqual(self.ip.calls, 0)
        self.assertEqual(len(self.sent), 1)
        self.assertEqual(
            self.sent[0][1],
            "rewound\nPossible loop in command spin, remaining tokens did not shrink"
        )

    def test_growing_stream_trips_loop_detection(self):
        grow = GrowHandler()
        registry = CommandRegistry()
        registry.add('ip', self.ip)
        registry.add('grow', grow)
        dispatcher = Dispatcher(registry, verbose_level=0)

        message = IncomingMessage(sender='alice', conversation_id=7, text="ip grow")
        dispatcher.dispatch(self.context, message, self.send)

        self.assertEqual(grow.calls, 1)
        self.assertEqual(self.ip.calls, 1)
        self.assertEqual(self.sent[-1][1], "Possible loop in command grow, remaining tokens did not shrink")
        self.assertEqual(len(self.sent), 2)

    def test_handler_exception_becomes_reply(self):
        registry = CommandRegistry()
        registry.add('fail', FailingHandler())
        registry.add('ip', self.ip)
        dispatcher = Dispatcher(registry, verbose_level=0)

        message = IncomingMessage(sender='alice', conversation_id=7, text="fail ip")
        dispatcher.dispatch(self.context, message, self.send)

        self.assertEqual(self.sent[0][1], "Command fail failed: boom")
        self.assertEqual(self.sent[1][1], "ip")

    def test_context_message_cleared_after_dispatch(self):
        seen = []

        class Spy:
            def handle(self, context, tokens):
                seen.append(context.message.sender)
                return "ok"

        self.registry = CommandRegistry()
        self.registry.add('spy', Spy())
        Dispatcher(self.registry, verbose_level=0).dispatch(
            self.context, IncomingMessage('carol', 1, 'spy'), self.send)
        self.assertEqual(seen, ['carol'])
        self.assertIsNone(self.context.message)


if __name__ == '__main__':
    unittest.main()
