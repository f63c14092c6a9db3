#!/usr/bin/env -S python3 -B -u

"""
Local console for the netem bot.

Every line typed at the prompt is handled exactly like a chat message from
the local login name: it goes through the same authorization gate and the
same dispatcher, and replies are printed instead of being sent.
"""

import argparse
import getpass
import sys
from typing import Any, Dict, Optional

import cmd2
import colorama
from colorama import Fore, Style

from ..bot import NetemBot
from ..core.config_loader import load_bot_config
from ..core.exceptions import NetemBotError
from ..core.models import IncomingMessage
from ..core.structured_logging import setup_logging

colorama.init()


CONSOLE_CONVERSATION = 'console'


class NetemBotShell(cmd2.Cmd):
    """Interactive shell feeding typed lines to the bot."""

    def __init__(self, config: Optional[Dict[str, Any]] = None, identity: Optional[str] = None,
                 facility=None, inventory=None, **kwargs):
        kwargs.setdefault('allow_cli_args', False)
        kwargs.setdefault('persistent_history_file', '')
        super().__init__(**kwargs)

        self.is_interactive = sys.stdin.isatty() and sys.stdout.isatty()
        self.identity = identity or getpass.getuser()
        self.bot = NetemBot(self, config or {}, facility=facility, inventory=inventory)

        self.base_prompt = f"{Fore.GREEN}netembot{Style.RESET_ALL}"
        if self.is_interactive:
            self.intro = (
                f"{Fore.CYAN}Netem Bot console{Style.RESET_ALL} - operating as {self.identity}\n"
                "Commands: " + ", ".join(self.bot.registry.names()) + ". Type 'status' for the current VLAN."
            )
            self.quit_on_error = False
        else:
            self.intro = ""
            self.quit_on_error = True
        self._update_prompt()

    def _update_prompt(self) -> None:
        if not self.is_interactive:
            self.prompt = ""
            return
        selection = self.bot.context.vlans.selection
        if selection.selected:
            self.prompt = f"{self.base_prompt}[{Fore.YELLOW}vlan {selection.vlan}{Style.RESET_ALL}]> "
        else:
            self.prompt = f"{self.base_prompt}> "

    def send(self, conversation_id, text: str) -> None:
        """Transport hook used by the bot to deliver replies."""
        if text:
            self.poutput(text)

    def default(self, statement):
        """Every line that is not a shell built-in is a bot message."""
        message = IncomingMessage(sender=self.identity, conversation_id=CONSOLE_CONVERSATION,
                                  text=statement.raw)
        self.bot.process(message)

    def postcmd(self, stop: bool, statement) -> bool:
        self._update_prompt()
        return stop

    def emptyline(self):
        """Called when an empty line is entered - do nothing instead of repeating last command."""
        pass

    def do_status(self, _):
        """Show the selected VLAN and the trusted operators."""
        self.poutput(self.bot.context.vlans.describe())
        operators = list(self.bot.context.operators)
        self.poutput(f"Operators: {', '.join(operators) if operators else '(none yet)'}")

    def do_exit(self, _):
        """Exit the shell."""
        if self.is_interactive:
            self.poutput(f"{Fore.CYAN}Goodbye!{Style.RESET_ALL}")
        return True


def main():
    """Main entry point for running the shell standalone."""
    parser = argparse.ArgumentParser(description='Local console for the netem bot')
    parser.add_argument('-c', '--config', help='Configuration file')
    parser.add_argument('-v', '--verbose', action='count', default=None,
                        help='Increase verbosity (-v info, -vv debug, -vvv trace)')
    args = parser.parse_args()

    try:
        config = load_bot_config(args.config)
    except NetemBotError as e:
        print(e.format_error(), file=sys.stderr)
        sys.exit(int(e.error_code))
    if args.verbose is not None:
        config['verbose_level'] = args.verbose
    setup_logging(config['verbose_level'])

    try:
        shell = NetemBotShell(config)
        sys.exit(shell.cmdloop())
    except KeyboardInterrupt:
        print("\nGoodbye!")
        sys.exit(0)


if __name__ == '__main__':
    main()
