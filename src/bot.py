#!/usr/bin/env -S python3 -B -u
"""
Netem Bot - remote network impairment over chat

This module wires the authorization gate, the command registry and the
dispatcher to a transport, and provides the `netembot` command line entry
point with its reconnect loop.

Key Features:
- One message fully dispatched before the next one is read
- Dispatch state (operators, VLAN selection) kept for the process lifetime
- Reconnect with doubling backoff when the chat API is unreachable
"""

import argparse
import sys
import time
from typing import Any, Dict, Optional

from .commands import register_default_commands
from .core.authorization import AuthorizationGate, OperatorSet
from .core.config_loader import load_bot_config, get_tc_config, get_telegram_config
from .core.dispatcher import CommandRegistry, Dispatcher, SessionContext
from .core.exceptions import ConfigurationError, ErrorCode, ErrorHandler, TransportError
from .core.impairment import ImpairmentApplier
from .core.inventory import InterfaceInventory
from .core.models import IncomingMessage
from .core.structured_logging import get_logger, setup_logging
from .core.vlan_selector import VlanSelector
from .executors.tc_executor import TcExecutor
from .transport.telegram import TelegramTransport


class NetemBot:
    """
    Gate plus dispatcher bound to a transport.

    The transport must provide `send(conversation_id, text)`; `serve()`
    additionally needs `messages()`.
    """

    def __init__(self, transport, config: Optional[Dict[str, Any]] = None,
                 facility=None, inventory: Optional[InterfaceInventory] = None,
                 verbose_level: Optional[int] = None):
        config = config or {}
        if verbose_level is None:
            verbose_level = config.get('verbose_level', 1)
        self.config = config
        self.verbose_level = verbose_level
        self.transport = transport
        self.logger = get_logger(__name__, verbose_level)

        facility = facility or TcExecutor(get_tc_config(config), verbose_level)
        inventory = inventory or InterfaceInventory()
        operators = OperatorSet(config.get('operators', []))

        self.context = SessionContext(
            inventory=inventory,
            vlans=VlanSelector(inventory, facility, verbose_level),
            applier=ImpairmentApplier(facility, verbose_level),
            operators=operators,
        )
        self.gate = AuthorizationGate(operators, verbose_level)
        self.registry = CommandRegistry()
        register_default_commands(self.registry, verbose_level)
        self.dispatcher = Dispatcher(self.registry, verbose_level)

    def process(self, message: IncomingMessage) -> int:
        """
        Authorize and dispatch one message.

        Returns:
            Number of commands executed (0 when the sender was rejected)
        """
        self.logger.log_message(message.sender, message.text)

        def notify(text: str) -> None:
            self.transport.send(message.conversation_id, text)

        if not self.gate.is_authorized(message.sender, notify):
            return 0
        return self.dispatcher.dispatch(self.context, message, self.transport.send)

    def serve(self) -> None:
        """Process messages from the transport until it fails."""
        for message in self.transport.messages():
            self.process(message)

    def serve_forever(self, retry_delay: float = 300, retry_delay_min: float = 5,
                      sleep=time.sleep) -> None:
        """
        Keep serving, reconnecting after transport failures.

        The wait doubles from `retry_delay_min` up to `retry_delay` on
        consecutive failures and resets once a session got going.
        """
        delay = retry_delay_min
        while True:
            try:
                me = self.transport.get_me()
                self.logger.info(f"Bot username {me.get('username', '?')}")
                delay = retry_delay_min
                self.serve()
            except TransportError as e:
                self.logger.error(f"Error: {e.message}. Waiting {delay:g} seconds...")
                sleep(delay)
                delay = min(delay * 2, retry_delay)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Telegram bot applying netem delay, jitter and loss to VLAN interfaces',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Configuration File Support:
  Options can be configured in a YAML file. Location precedence:
  1. -c/--config
  2. $NETEMBOT_CONF environment variable
  3. ~/netembot.yaml (user's home directory)
  4. ./netembot.yaml (current directory)

  The bot token is taken from -t/--token, then the configuration file,
  then $NETEMBOT_TOKEN.

Chat commands:
  ip                                    list IPv4 addresses
  vlan <1-4094>                         select VLAN sub-interface
  out <delay_ms> [jitter] [loss] [corr] egress impairment
  in  <delay_ms> [jitter] [loss] [corr] ingress impairment (needs IFB)
  master <identity>                     trust another operator
        """)
    parser.add_argument('-t', '--token', help='Telegram API token')
    parser.add_argument('-c', '--config', help='Configuration file')
    parser.add_argument('-v', '--verbose', action='count', default=None,
                        help='Increase verbosity (-v info, -vv debug, -vvv trace)')
    parser.add_argument('--retry-delay', type=float,
                        help='Maximum seconds to wait before reconnecting')
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Dict[str, Any]:
    """Merge configuration file and command line; CLI wins."""
    config = load_bot_config(args.config)
    if args.token:
        config['token'] = args.token
    if args.verbose is not None:
        config['verbose_level'] = args.verbose
    if args.retry_delay is not None:
        config['retry_delay'] = args.retry_delay
    if not config.get('token'):
        raise ConfigurationError(
            "Telegram token is required (use -t/--token, 'token' in netembot.yaml or $NETEMBOT_TOKEN)",
            config_file=config.get('_config_file')
        )
    return config


@ErrorHandler.wrap_main
def run(argv=None) -> int:
    args = parse_args(argv)
    config = build_config(args)
    setup_logging(config['verbose_level'])

    telegram = get_telegram_config(config)
    transport = TelegramTransport(
        telegram['token'],
        api_url=telegram['api_url'],
        poll_timeout=telegram['poll_timeout'],
        verbose_level=config['verbose_level']
    )
    bot = NetemBot(transport, config)
    bot.serve_forever(retry_delay=telegram['retry_delay'], retry_delay_min=telegram['retry_delay_min'])
    return ErrorCode.SUCCESS


def main():
    """Main entry point for the netembot command."""
    sys.exit(int(run()))


if __name__ == '__main__':
    main()
