#!/usr/bin/env -S python3 -B -u
"""
Telegram Bot API transport.

This module provides an HTTP client for the Telegram Bot API: long-polling
for incoming messages and sending replies back to a chat.
"""

from typing import Any, Dict, Iterator, List, Optional, Tuple

import requests

from ..core.config_loader import DEFAULT_API_URL
from ..core.exceptions import TransportError
from ..core.models import IncomingMessage
from ..core.structured_logging import get_logger, mask_url


MAX_MESSAGE_LENGTH = 4096


def sender_identity(user: Dict[str, Any]) -> str:
    """Username when set, otherwise "First Last"."""
    if user.get('username'):
        return user['username']
    name = user.get('first_name', '')
    if user.get('last_name'):
        name = f"{name} {user['last_name']}"
    return name


def split_text(text: str, limit: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Split a reply into chunks Telegram accepts, preferring line boundaries."""
    chunks = []
    while len(text) > limit:
        cut = text.rfind('\n', 0, limit)
        if cut <= 0:
            cut = limit
        chunks.append(text[:cut])
        text = text[cut:].lstrip('\n')
    if text:
        chunks.append(text)
    return chunks


class TelegramTransport:
    """HTTP client for the Telegram Bot API."""

    def __init__(self, token: str, api_url: str = DEFAULT_API_URL, poll_timeout: int = 60,
                 verbose_level: Optional[int] = None, session: Optional[requests.Session] = None):
        self.token = token
        self.api_url = api_url.rstrip('/')
        if not self.api_url.startswith('http'):
            self.api_url = f"https://{self.api_url}"
        self.poll_timeout = poll_timeout
        self.session = session or requests.Session()
        self.offset = 0
        self.logger = get_logger(__name__, verbose_level)

    def _url(self, method: str) -> str:
        return f"{self.api_url}/bot{self.token}/{method}"

    def call(self, method: str, **params: Any) -> Any:
        """
        Call a Bot API method and return its `result`.

        Raises:
            TransportError: On network failure, bad JSON or `ok: false`
        """
        url = self._url(method)
        self.logger.trace(f"POST {mask_url(url)}", params=params)
        try:
            response = self.session.post(url, json=params, timeout=self.poll_timeout + 10)
        except requests.RequestException as e:
            raise TransportError(method, mask_url(str(e)), cause=e)

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(method, f"HTTP {response.status_code}: invalid JSON response", cause=e)

        if not data.get('ok'):
            raise TransportError(method, data.get('description') or f"HTTP {response.status_code}")
        return data.get('result')

    def get_me(self) -> Dict[str, Any]:
        """Identity of the bot account; also checks the token."""
        return self.call('getMe')

    def poll(self) -> List[Tuple[int, Optional[IncomingMessage]]]:
        """
        Fetch pending updates once, without acknowledging them.

        New and edited messages are both converted. Updates carrying no
        usable message are returned with None so they can be acknowledged too.

        Returns:
            (update_id, message or None) pairs in arrival order
        """
        updates = self.call('getUpdates', offset=self.offset, timeout=self.poll_timeout)
        result = []
        for update in updates or []:
            update_id = update.get('update_id', 0)
            message = update.get('message') or update.get('edited_message')
            if not message or 'from' not in message:
                result.append((update_id, None))
                continue
            result.append((update_id, IncomingMessage(
                sender=sender_identity(message['from']),
                conversation_id=message['chat']['id'],
                text=message.get('text', '')
            )))
        return result

    def acknowledge(self, update_id: int) -> None:
        """Move the offset past an update; Telegram will not deliver it again."""
        self.offset = max(self.offset, update_id + 1)

    def messages(self) -> Iterator[IncomingMessage]:
        """
        Endless stream of incoming messages, in arrival order.

        An update is acknowledged only when the consumer asks for the next
        message, i.e. after the previous one was processed. If processing
        fails, the unacknowledged updates are fetched again on the next poll.
        """
        while True:
            for update_id, message in self.poll():
                if message is not None:
                    yield message
                self.acknowledge(update_id)

    def send(self, conversation_id: Any, text: str) -> None:
        """Send a reply, split into several messages when too long."""
        if not text or not text.strip():
            self.logger.debug("Skipping empty reply", chat_id=conversation_id)
            return
        for chunk in split_text(text):
            self.call('sendMessage', chat_id=conversation_id, text=chunk)
