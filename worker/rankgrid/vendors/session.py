"""Shared HTTP session with an explicit acquire/close lifecycle."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Callable, Optional

import requests

logger = logging.getLogger(__name__)


class SessionHandle:
    """Lazily creates one ``requests.Session`` shared by every caller.

    ``acquire()`` is idempotent and thread-safe: all callers get the same
    future, including callers that arrive while the session is still being
    created. If creation fails the future carries the exception and is
    dropped, so the next ``acquire()`` tries again.
    A session that finishes creation after ``close()`` is closed at once.
    """

    def __init__(self, factory: Callable[[], requests.Session] = requests.Session):
        self._factory = factory
        self._lock = threading.Lock()
        self._future: Optional["Future[requests.Session]"] = None

    def acquire(self) -> "Future[requests.Session]":
        with self._lock:
            if self._future is not None:
                return self._future
            future: "Future[requests.Session]" = Future()
            self._future = future

        try:
            session = self._factory()
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to create HTTP session: %s", exc)
            with self._lock:
                if self._future is future:
                    self._future = None
            future.set_exception(exc)
        else:
            logger.debug("HTTP session created")
            future.set_result(session)
            with self._lock:
                orphaned = self._future is not future
            if orphaned:
                # close() ran while the session was being created
                session.close()
                logger.debug("HTTP session closed after a concurrent close()")
        return future

    def get(self, timeout: Optional[float] = None) -> requests.Session:
        """Block until the shared session is available and return it."""
        return self.acquire().result(timeout=timeout)

    @property
    def ready(self) -> bool:
        with self._lock:
            future = self._future
        return future is not None and future.done() and future.exception() is None

    def close(self) -> None:
        with self._lock:
            future, self._future = self._future, None
        if future is not None and future.done() and future.exception() is None:
            future.result().close()
            logger.debug("HTTP session closed")

    def __enter__(self) -> "SessionHandle":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
