"""
Reconnect Supervisor
====================

Keeps a StreamingClient receiving for the lifetime of the process.

State machine:

    RECEIVING    --receive_loop() ends-->   RECONNECTING
    RECONNECTING --connect() succeeds-->    RECEIVING
    RECONNECTING --connect() fails-->       sleep(delay), RECONNECTING

Design Rules:
    - Starts in RECEIVING (the client is connected before supervision)
    - Fixed delay between failed connects, no backoff growth
    - Unlimited attempts, no terminal state
    - Errors are logged, never surfaced to HTTP consumers
    - connect() only runs after receive_loop() has returned
"""

import asyncio
import logging
from enum import Enum
from typing import Protocol

from signal_api_receiver.stream.errors import DialError, ReceiverError


logger = logging.getLogger(__name__)


class SupervisedClient(Protocol):
    """What the supervisor needs from a client."""

    async def connect(self) -> None: ...

    async def receive_loop(self) -> None: ...


class SupervisorState(str, Enum):
    """
    Supervisor states.

    Attributes:
        RECEIVING: receive_loop() is running on the current connection
        RECONNECTING: Trying to obtain a fresh connection
    """

    RECEIVING = "RECEIVING"
    RECONNECTING = "RECONNECTING"


class ReconnectSupervisor:
    """
    Drives a client between receiving and reconnecting forever.

    Attributes:
        client: Client to supervise
        reconnect_delay: Seconds to sleep after a failed connect
        state: Current SupervisorState
        reconnect_count: Successful reconnects so far
        failed_connects: Failed connect attempts so far

    Example:
        client = await StreamingClient.create(url)
        supervisor = ReconnectSupervisor(client, reconnect_delay=1.0)

        # Started once, never joined
        task = asyncio.create_task(supervisor.run())
    """

    def __init__(self, client: SupervisedClient, reconnect_delay: float = 1.0) -> None:
        if reconnect_delay < 0:
            raise ValueError("reconnect_delay must be >= 0")

        self.client = client
        self.reconnect_delay = reconnect_delay

        self._state = SupervisorState.RECEIVING
        self._running: bool = False
        self._stop_event: asyncio.Event = asyncio.Event()

        self.reconnect_count: int = 0
        self.failed_connects: int = 0

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def running(self) -> bool:
        return self._running

    async def run(self) -> None:
        """
        Run the supervisor loop.

        Returns only after stop() is called; task cancellation propagates.
        """
        self._running = True
        self._stop_event.clear()
        logger.info(f"Reconnect supervisor started (delay={self.reconnect_delay}s)")

        while self._running:
            if self._state is SupervisorState.RECEIVING:
                await self._receive()
            else:
                await self._reconnect()

        logger.info("Reconnect supervisor stopped")

    def stop(self) -> None:
        """Ask the loop to exit after the current step."""
        self._running = False
        self._stop_event.set()

    def metrics(self) -> dict:
        return {
            "state": self._state.value,
            "reconnect_count": self.reconnect_count,
            "failed_connects": self.failed_connects,
        }

    async def _receive(self) -> None:
        try:
            await self.client.receive_loop()
        except ReceiverError as e:
            logger.warning(f"Error in the receive loop: {e}")
        except Exception:
            logger.exception("Unexpected error in the receive loop")
        else:
            logger.warning("Receive loop returned without an error")

        self._transition(SupervisorState.RECONNECTING)

    async def _reconnect(self) -> None:
        try:
            await self.client.connect()
        except DialError as e:
            self._connect_failed(f"Error reconnecting: {e}")
        except Exception:
            logger.exception("Unexpected error while reconnecting")
            self._connect_failed("Error reconnecting")
        else:
            self.reconnect_count += 1
            self._transition(SupervisorState.RECEIVING)
            return

        await self._sleep()

    def _connect_failed(self, message: str) -> None:
        self.failed_connects += 1
        logger.warning(
            f"{message} (attempt {self.failed_connects}, "
            f"retrying in {self.reconnect_delay:.1f}s)"
        )

    async def _sleep(self) -> None:
        # Wakes early when stop() is called
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.reconnect_delay)
        except asyncio.TimeoutError:
            pass

    def _transition(self, new_state: SupervisorState) -> None:
        if new_state is not self._state:
            logger.info(f"Supervisor state {self._state.value} -> {new_state.value}")
        self._state = new_state
