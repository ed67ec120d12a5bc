"""Single-slot debounce timer.

Every :meth:`Debouncer.submit` replaces the pending timer instead of queueing
behind it, so the callback fires once per pause in input with the arguments of
the most recent submission. A generation counter guards against a timer that
already started running when it was replaced.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional, Tuple

LOGGER = logging.getLogger("ExtensionCopilot.concurrency.debounce")


class Debouncer:
    """Coalesce rapid submissions into one delayed callback.

    Examples:
        >>> seen = []
        >>> debouncer = Debouncer(60.0, seen.append)
        >>> debouncer.submit("a")
        >>> debouncer.flush()
        True
        >>> seen
        ['a']
    """

    def __init__(
        self,
        delay_seconds: float,
        callback: Callable[..., Any],
        *,
        name: str = "debounce",
    ) -> None:
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self._delay = float(delay_seconds)
        self._callback = callback
        self._name = name
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._pending_args: Optional[Tuple[Any, ...]] = None
        self._generation = 0

    @property
    def delay_seconds(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """Return ``True`` while a submission is waiting for quiescence."""
        with self._lock:
            return self._pending_args is not None

    def submit(self, *args: Any) -> None:
        """Schedule ``callback(*args)``, replacing any pending submission."""

        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            generation = self._generation
            self._pending_args = args
            timer = threading.Timer(self._delay, self._fire, args=(generation,))
            timer.daemon = True
            timer.name = f"{self._name}-{generation}"
            self._timer = timer
        timer.start()

    def flush(self) -> bool:
        """Run the pending submission immediately.

        Returns:
            ``True`` when a pending submission was executed.
        """

        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            args = self._pending_args
            self._pending_args = None
            self._generation += 1
        if args is None:
            return False
        self._invoke(args)
        return True

    def cancel(self) -> None:
        """Drop the pending submission without running it."""

        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending_args = None
            self._generation += 1

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._pending_args is None:
                return
            args = self._pending_args
            self._pending_args = None
            self._timer = None
        self._invoke(args)

    def _invoke(self, args: Tuple[Any, ...]) -> None:
        try:
            self._callback(*args)
        except Exception:
            LOGGER.exception("debounced callback failed", extra={"debouncer": self._name})
