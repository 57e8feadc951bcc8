"""
=========================================
Event receivers and post-commit callbacks.
=========================================

Handles report what they do (statement timings, driver errors, commits and
rollbacks) to an event receiver. The default receivers write to the standard
logging module.

A receiver may additionally implement SupportsAfterCommit. Such a receiver
hands every outer transaction a fresh commit-callback registry, shared only
by the transaction handles derived from that outer transaction. Callbacks
are appended during the transaction and run, in registration order, only
after the outer transaction physically commits. A rollback discards them.
One receiver may serve several handles without their callbacks mixing.

Handles check the capability once, when they are created. Registering a
callback on a handle whose receiver lacks it raises
CallbackRegistrationError immediately.

Concurrency:
    Receivers and registries hold no locks. A handle tree is driven by one
    thread at a time.

Classes:
    EventReceiver: Logging receiver without callback support
    NullEventReceiver: Discards every event
    SupportsAfterCommit: Optional post-commit callback capability
    CommitCallbacks: Ordered callback registry
    AfterCommitEventReceiver: Logging receiver with callback support

Example:
    >>> receiver = AfterCommitEventReceiver()
    >>> handle = wrap(connection, receiver=receiver)
    >>> with handle.begin() as tx:
    ...     tx.insert_into('orders').columns('sku').values('A-1').exec()
    ...     tx.run_after_commit(lambda: print("order stored"))
    ...     tx.commit()
    order stored
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)

Callback = Callable[[], Any]


class EventReceiver:
    """Receives handle events and writes them to the log.

    Args:
        logger_name: Name of the logger events are written to
    """

    def __init__(self, logger_name: str = __name__):
        self.log = logging.getLogger(logger_name)

    def event(self, name: str, **kvs: Any) -> None:
        self.log.debug(f"{name} {_format_kvs(kvs)}".rstrip())

    def event_err(self, name: str, err: BaseException, **kvs: Any) -> BaseException:
        """Record a failure and hand the error back to the caller."""
        self.log.error(f"{name} failed: {err} {_format_kvs(kvs)}".rstrip())
        return err

    def timing(self, name: str, seconds: float, **kvs: Any) -> None:
        self.log.debug(f"{name} took {seconds * 1000:.2f}ms {_format_kvs(kvs)}".rstrip())


class NullEventReceiver(EventReceiver):
    """Receiver that ignores every event."""

    def event(self, name: str, **kvs: Any) -> None:
        pass

    def event_err(self, name: str, err: BaseException, **kvs: Any) -> BaseException:
        return err

    def timing(self, name: str, seconds: float, **kvs: Any) -> None:
        pass


class CommitCallbacks:
    """Ordered, append-only list of zero-argument callbacks.

    Args:
        log: Logger reporting runs and discards (defaults to this module's)
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger
        self._callbacks: List[Callback] = []

    def append(self, callback: Callback) -> None:
        if not callable(callback):
            raise TypeError(f"callback must be callable, got {type(callback).__name__}")
        self._callbacks.append(callback)

    def run(self) -> None:
        """Invoke every callback in order.

        The registry is emptied before the first call; an exception from a
        callback propagates and the callbacks after it do not run.
        """
        callbacks, self._callbacks = self._callbacks, []
        if callbacks:
            self.log.debug(f"Running {len(callbacks)} after-commit callback(s)")
        for callback in callbacks:
            callback()

    def clear(self) -> None:
        if self._callbacks:
            self.log.debug(f"Discarding {len(self._callbacks)} after-commit callback(s)")
        self._callbacks = []

    def __len__(self) -> int:
        return len(self._callbacks)


class SupportsAfterCommit(ABC):
    """Capability of receivers that can hold post-commit callbacks."""

    @abstractmethod
    def new_commit_callbacks(self) -> CommitCallbacks:
        """Create the registry of one outer transaction."""


class AfterCommitEventReceiver(EventReceiver, SupportsAfterCommit):
    """Logging receiver handing each outer transaction its own registry."""

    def new_commit_callbacks(self) -> CommitCallbacks:
        return CommitCallbacks(self.log)


def _format_kvs(kvs: dict) -> str:
    return ' '.join(f"{key}={value!r}" for key, value in kvs.items())
