#!/usr/bin/env -S python3 -B -u
"""
Test Suite for Impairment Parameters and the Applier

This module tests:
1. Positional parsing with speculative optional arguments
2. Range validation of delay, jitter, loss and correlation
3. The netem argument vector built for each parameter combination
4. The clear/add invocation sequence and its reply text
"""

import unittest
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.core.exceptions import UsageError, RangeError
from src.core.impairment import (
    parse_int, parse_percent, parse_impairment_params, skip_impairment_arguments,
    clear_arguments, netem_arguments, ImpairmentApplier
)
from src.core.models import ImpairmentParams, ShapingResult, VlanSelection
from src.core.tokens import TokenStream


class RecordingFacility:
    """Shaping facility double recording every invocation."""

    def __init__(self, failures=None, filter_table=''):
        self.invocations = []
        self.failures = failures or {}
        self.filter_table = filter_table

    def run_shaping_command(self, argv):
        self.invocations.append(list(argv))
        error = self.failures.get(argv[1])
        if error:
            return ShapingResult(argv=list(argv), success=False, error=error)
        return ShapingResult(argv=list(argv))

    def query_filter_table(self, interface):
        return self.filter_table


SELECTED = VlanSelection(vlan=10, device='eth0.10')


def parse(text, selection=SELECTED):
    tokens = TokenStream.from_text(text)
    return parse_impairment_params(selection, tokens), tokens


class TestNumberParsing(unittest.TestCase):
    """Test the integer and percentage token parsers."""

    def test_parse_int(self):
        self.assertEqual(parse_int('50'), 50)
        self.assertEqual(parse_int('-3'), -3)
        self.assertEqual(parse_int('+7'), 7)
        for bad in ('5.0', '', 'ten', '0x10', '1e3', '١٠', '1_0'):
            with self.assertRaises(ValueError):
                parse_int(bad)

    def test_parse_percent(self):
        self.assertEqual(parse_percent('0.5'), 0.5)
        self.assertEqual(parse_percent('10%'), 10.0)
        self.assertEqual(parse_percent('3'), 3.0)
        for bad in ('%', 'vlan', '', '1_0', '١٠', '5_%'):
            with self.assertRaises(ValueError):
                parse_percent(bad)


class TestParseImpairmentParams(unittest.TestCase):
    """Test parsing of `<delay> [jitter] [loss] [correlation]`."""

    def test_no_vlan_selected(self):
        with self.assertRaises(UsageError) as ctx:
            parse("50", selection=VlanSelection())
        self.assertEqual(ctx.exception.reply_text(), 'No VLAN selected. Run "vlan" for more info')

    def test_no_vlan_selected_consumes_arguments(self):
        tokens = TokenStream.from_text("50 5 2.5 10% 7 ip")
        with self.assertRaises(UsageError):
            parse_impairment_params(VlanSelection(), tokens)
        self.assertEqual(tokens.next(), '7')

    def test_skip_stops_at_first_unparseable(self):
        tokens = TokenStream.from_text("50 fast 3")
        self.assertEqual(skip_impairment_arguments(tokens), 1)
        self.assertEqual(tokens.next(), 'fast')
        self.assertEqual(skip_impairment_arguments(TokenStream.from_text("vlan 10")), 0)

    def test_missing_delay(self):
        with self.assertRaises(UsageError) as ctx:
            parse("")
        self.assertTrue(ctx.exception.message.startswith("Error: must at least provide delay (ms)"))

    def test_non_numeric_delay(self):
        with self.assertRaises(UsageError) as ctx:
            parse("fast")
        self.assertTrue(ctx.exception.message.startswith("delay is not an int:"))

    def test_delay_only(self):
        params, tokens = parse("50")
        self.assertEqual(params, ImpairmentParams(delay=50))
        self.assertEqual(tokens.remaining(), 0)

    def test_all_parameters(self):
        params, tokens = parse("100 10 2.5 25%")
        self.assertEqual(params, ImpairmentParams(delay=100, jitter=10, loss=2.5, correlation=25.0))
        self.assertEqual(tokens.remaining(), 0)

    def test_unparseable_optional_is_left_in_stream(self):
        params, tokens = parse("50 vlan 20")
        self.assertEqual(params, ImpairmentParams(delay=50))
        self.assertEqual(tokens.remaining(), 2)
        self.assertEqual(tokens.next(), 'vlan')

    def test_parsing_stops_at_first_unparseable_optional(self):
        params, tokens = parse("50 5 ip 3")
        self.assertEqual(params, ImpairmentParams(delay=50, jitter=5))
        self.assertEqual(tokens.next(), 'ip')

    def test_fractional_jitter_is_not_consumed(self):
        params, tokens = parse("50 2.5")
        self.assertEqual(params.jitter, 0)
        self.assertEqual(tokens.remaining(), 1)

    def test_delay_bounds(self):
        self.assertEqual(parse("0")[0].delay, 0)
        self.assertEqual(parse("4094")[0].delay, 4094)
        for text in ("4095", "-1"):
            with self.assertRaises(RangeError) as ctx:
                parse(text)
            self.assertEqual(ctx.exception.message, "Error: Delay must be between 0 and 4094 milliseconds")

    def test_jitter_bounds(self):
        with self.assertRaises(RangeError) as ctx:
            parse("50 5000")
        self.assertEqual(ctx.exception.details['field'], 'jitter')

    def test_loss_bounds(self):
        self.assertEqual(parse("50 0 100")[0].loss, 100.0)
        for text in ("50 0 100.1", "50 0 -1", "50 0 nan", "50 0 inf"):
            with self.assertRaises(RangeError) as ctx:
                parse(text)
            self.assertEqual(ctx.exception.message, "Error: Packet loss must be between 0.0 and 100.0 percent")

    def test_correlation_bounds(self):
        with self.assertRaises(RangeError) as ctx:
            parse("50 0 1 101")
        self.assertEqual(ctx.exception.message, "Error: Correlation must be between 0.0 and 100.0 percent")


class TestNetemArguments(unittest.TestCase):
    """Test the tc argument vectors."""

    def test_clear_arguments(self):
        self.assertEqual(clear_arguments('eth0.10'), ['qdisc', 'del', 'dev', 'eth0.10', 'root'])

    def test_delay_with_jitter(self):
        self.assertEqual(
            netem_arguments('eth0.10', ImpairmentParams(delay=50, jitter=5)),
            ['qdisc', 'add', 'dev', 'eth0.10', 'root', 'netem',
             'delay', '50ms', '5ms', 'distribution', 'normal']
        )

    def test_delay_without_jitter(self):
        self.assertEqual(
            netem_arguments('eth0.10', ImpairmentParams(delay=50)),
            ['qdisc', 'add', 'dev', 'eth0.10', 'root', 'netem', 'delay', '50ms']
        )

    def test_loss_with_correlation(self):
        self.assertEqual(
            netem_arguments('ifb0', ImpairmentParams(loss=2.5, correlation=25)),
            ['qdisc', 'add', 'dev', 'ifb0', 'root', 'netem', 'loss', '2.5%', '25%']
        )

    def test_jitter_ignored_without_delay(self):
        argv = netem_arguments('ifb0', ImpairmentParams(jitter=5, loss=1))
        self.assertNotIn('delay', argv)
        self.assertNotIn('5ms', argv)
        self.assertEqual(argv[-2:], ['loss', '1%'])


class TestImpairmentApplier(unittest.TestCase):
    """Test the invocation sequence run by the applier."""

    def test_clear_then_add(self):
        facility = RecordingFacility()
        reply = ImpairmentApplier(facility, verbose_level=0).apply(
            'eth0.10', ImpairmentParams(delay=50, jitter=5))

        self.assertEqual(len(facility.invocations), 2)
        self.assertEqual(facility.invocations[0], clear_arguments('eth0.10'))
        self.assertEqual(facility.invocations[1][:6], ['qdisc', 'add', 'dev', 'eth0.10', 'root', 'netem'])
        self.assertIn("Cleared interface eth0.10", reply)
        self.assertIn("Policy for interface eth0.10: 50ms delay (5ms jitter), 0% PL (0% correlation)", reply)

    def test_noop_only_clears(self):
        facility = RecordingFacility()
        reply = ImpairmentApplier(facility, verbose_level=0).apply('eth0.10', ImpairmentParams(jitter=5))

        self.assertEqual(facility.invocations, [clear_arguments('eth0.10')])
        self.assertIn("No impairment requested, eth0.10 left without policy", reply)

    def test_clear_failure_is_informational(self):
        facility = RecordingFacility(failures={'del': 'Cannot delete qdisc with handle of zero.'})
        reply = ImpairmentApplier(facility, verbose_level=0).apply('eth0.10', ImpairmentParams(delay=10))

        self.assertEqual(len(facility.invocations), 2)
        self.assertIn("(Ignore) Error at qdisc del: Cannot delete qdisc with handle of zero.", reply)
        self.assertNotIn("Error at qdisc add", reply)

    def test_add_failure_is_reported(self):
        facility = RecordingFacility(failures={'add': 'Operation not permitted'})
        reply = ImpairmentApplier(facility, verbose_level=0).apply('eth0.10', ImpairmentParams(delay=10))

        self.assertTrue(reply.endswith("Error at qdisc add: Operation not permitted"))


if __name__ == '__main__':
    unittest.main()
