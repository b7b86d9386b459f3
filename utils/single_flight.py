"""
Per-key call coalescing.

While a call for a key is running, further calls for the same key wait for
it and receive its result (or its exception) instead of starting their own.
Calls for different keys never wait on each other.
"""

import threading
from typing import Any, Callable, Dict, Hashable, Optional

from utils.logger import get_logger

logger = get_logger(__name__)


class _Call:
    """One in-flight call and its outcome."""

    def __init__(self):
        self.done = threading.Event()
        self.result: Any = None
        self.error: Optional[BaseException] = None
        self.waiters = 0


class SingleFlight:
    """Coalesces concurrent calls sharing a key into a single execution."""

    def __init__(self):
        self._lock = threading.Lock()
        self._calls: Dict[Hashable, _Call] = {}

    def do(self, key: Hashable, fn: Callable[[], Any]) -> Any:
        """Run ``fn`` unless a call for ``key`` is already in flight, then share its outcome.

        The first caller runs ``fn`` on its own thread. Later callers block
        until it finishes and get the same return value, or the same
        exception raised again. Once a call finishes the key is released, so
        the next ``do`` starts a fresh execution.
        """
        with self._lock:
            call = self._calls.get(key)
            if call is not None:
                call.waiters += 1
                leader = False
            else:
                call = _Call()
                self._calls[key] = call
                leader = True

        if not leader:
            logger.debug(f"Joining in-flight call for {key}")
            call.done.wait()
            if call.error is not None:
                raise call.error
            return call.result

        try:
            call.result = fn()
        except BaseException as e:
            call.error = e
            raise
        finally:
            with self._lock:
                del self._calls[key]
            call.done.set()
            if call.waiters:
                logger.debug(f"Shared call for {key} with {call.waiters} waiter(s)")

        return call.result

    def in_flight(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._calls
