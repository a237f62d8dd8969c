"""
Debounce helper.

Holds back a rapidly changing value until it has stayed unchanged for
`delay` seconds, then publishes it to a callback. Timers live on the
running asyncio loop; only the last pushed value can ever be published.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Debouncer(Generic[T]):
    def __init__(
        self,
        delay: float,
        callback: Callable[[T], None],
        initial: Optional[T] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """
        Args:
            delay: Seconds the input must stay unchanged before it is published.
            callback: Called with the settled value.
            initial: Output held before anything has been published.
            loop: Event loop for timers; defaults to the running loop.
        """
        self.delay = delay
        self._callback = callback
        self._value = initial
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._disposed = False

    @property
    def value(self) -> Optional[T]:
        """The last published (settled) value."""
        return self._value

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def disposed(self) -> bool:
        return self._disposed

    def push(self, value: T) -> None:
        """Feed a new input value; last write wins."""
        if self._disposed:
            return
        self._cancel()
        if value == self._value:
            return
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire, value)

    def reset(self, value: T) -> None:
        """Set the held output directly, dropping any pending publish without a callback."""
        self._cancel()
        self._value = value

    def dispose(self) -> None:
        self._cancel()
        self._disposed = True

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, value: T) -> None:
        self._handle = None
        if self._disposed:
            return
        self._value = value
        logger.debug("Debounced value settled: %r", value)
        self._callback(value)
