"""Server lifecycle: accepting flag, drain and the failsafe exit timer.

The accepting flag is the only process-wide mutable state shared between
requests. It flips once, through `ServerLifecycle.drain()`, and never back.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import TYPE_CHECKING, Protocol

from meadowlark.http.settings import FAILSAFE_DELAY_SECONDS

if TYPE_CHECKING:
    from collections.abc import Callable

    import uvicorn


logger = logging.getLogger(__name__)

FAILSAFE_EXIT_CODE: int = 1


class _Timer(Protocol):
    daemon: bool

    def start(self) -> None: ...


class TimerFactory(Protocol):
    def __call__(self, interval: float, function: Callable[[], None]) -> _Timer: ...


class ServerLifecycle:
    """Live handle on a server process.

    `start_server()` attaches the uvicorn server and the thread running it;
    apps built for tests run without either and only track the flag.
    """

    def __init__(
        self,
        *,
        failsafe_delay: float = FAILSAFE_DELAY_SECONDS,
        exit_process: Callable[[int], None] = os._exit,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        """Create a lifecycle that is accepting connections."""
        self.failsafe_delay = failsafe_delay
        self._exit_process = exit_process
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._accepting = True
        self._failsafe_armed = 0
        self.server: uvicorn.Server | None = None
        self.thread: threading.Thread | None = None

    @property
    def accepting(self) -> bool:
        """Whether the server still takes new connections."""
        with self._lock:
            return self._accepting

    @property
    def failsafe_armed(self) -> int:
        """Number of failsafe timers armed so far."""
        with self._lock:
            return self._failsafe_armed

    def attach(
        self,
        server: uvicorn.Server,
        thread: threading.Thread | None = None,
    ) -> None:
        self.server = server
        self.thread = thread

    def drain(self) -> bool:
        """Stop accepting new connections; in-flight requests keep running.

        Returns True on the call that actually drained, False afterwards.
        """
        with self._lock:
            if not self._accepting:
                return False
            self._accepting = False

        server = self.server
        if server is not None:
            # uvicorn closes its listening sockets, then waits for open
            # connections before returning from serve().
            server.should_exit = True
        logger.warning("Server draining: no longer accepting connections")
        return True

    def arm_failsafe(self) -> None:
        """Schedule a forced process exit after `failsafe_delay` seconds.

        Armed timers are never cancelled.
        """
        timer = self._timer_factory(self.failsafe_delay, self._failsafe_exit)
        timer.daemon = True
        timer.start()
        with self._lock:
            self._failsafe_armed += 1
        logger.error("Failsafe shutdown armed (%.1fs)", self.failsafe_delay)

    def _failsafe_exit(self) -> None:
        logger.critical("Failsafe shutdown.")
        logging.shutdown()
        self._exit_process(FAILSAFE_EXIT_CODE)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the server thread finishes; True when it has."""
        thread = self.thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()
