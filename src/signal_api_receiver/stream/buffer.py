"""
Message Buffer
==============

Thread-safe FIFO queue of accepted messages.

This module provides the MessageBuffer class, the only state shared
between the receive loop (single producer) and HTTP handlers (any number
of consumers).

Design Rules:
    - Unbounded (messages are held until a consumer polls)
    - Every mutation happens under a single lock
    - Pop removes the oldest message, flush drains everything at once
    - Does NOT inspect or modify messages
"""

import logging
import threading
from collections import deque
from typing import Deque, List, Optional

from signal_api_receiver.models.message import Message


logger = logging.getLogger(__name__)


class MessageBuffer:
    """
    Mutex-guarded FIFO of messages.

    A plain ``threading.Lock`` is used rather than an asyncio primitive so
    pop/flush stay atomic when called from worker threads as well as from
    the event loop. No operation blocks while holding the lock.

    Example:
        buffer = MessageBuffer()

        # Producer
        buffer.append(message)

        # Consumers
        oldest = buffer.pop()
        everything = buffer.flush()
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._messages: Deque[Message] = deque()
        self._total_appended: int = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)

    @property
    def total_appended(self) -> int:
        """Total messages ever appended."""
        return self._total_appended

    def append(self, message: Message) -> None:
        """Add message at the tail."""
        with self._lock:
            self._messages.append(message)
            self._total_appended += 1

    def pop(self) -> Optional[Message]:
        """
        Remove and return the oldest message.

        Returns:
            The head of the queue, or None if empty.
        """
        with self._lock:
            if not self._messages:
                return None
            return self._messages.popleft()

    def flush(self) -> List[Message]:
        """
        Atomically drain the buffer.

        Returns:
            All buffered messages in arrival order (possibly empty).
        """
        with self._lock:
            messages = list(self._messages)
            self._messages.clear()
        return messages

    def metrics(self) -> dict:
        """
        Get buffer metrics for observability.

        Returns:
            Dict with size and total_appended
        """
        return {
            "size": len(self),
            "total_appended": self._total_appended,
        }
