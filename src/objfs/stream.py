"""Pausable entry stream.

Delivers normalized directory entries to a consumer one at a time. The
producer pulls one raw record from its source, normalizes it and emits it,
then moves on to the next record only while the stream is not paused. At
most one production step is in flight, and nothing is read ahead of the
consumer beyond the backend page the source is currently positioned on.

Consumers either register listeners::

    stream.on("data", handle_entry).on("error", handle_error).on("end", done)

or iterate::

    async for entry in stream:
        ...

Production starts as soon as the stream is created. The first step runs on
the next event loop iteration, so listeners attached right after the stream
is handed out (without awaiting in between) observe every event.

A listener that raises is logged with its traceback and the stream ends with
a single "end" event.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import deque
from collections.abc import AsyncIterator, Callable
from enum import Enum
from typing import Any

from objfs.errors import ObjfsError, StorageBackendError, UnsupportedRecordError
from objfs.models import DirectoryEntry

logger = logging.getLogger(__name__)

DATA = "data"
ERROR = "error"
END = "end"
EVENTS = (DATA, ERROR, END)

# Outcomes of pulling from the source.
_RECORD = "record"
_EXHAUSTED = "exhausted"
_FAILED = "failed"


class StreamState(str, Enum):
    STREAMING = "streaming"
    PAUSED = "paused"
    ENDED = "ended"


class EntryStream:
    """Push-based stream of DirectoryEntry values with pause/resume flow control.

    Args:
        source: Async iterator of raw records, consumed lazily.
        normalize: Maps one raw record to a DirectoryEntry. Failures become
            "error" events and production continues with the next record.
    """

    def __init__(
        self,
        source: AsyncIterator[Any],
        normalize: Callable[[Any], DirectoryEntry],
    ) -> None:
        self._source = source
        self._normalize = normalize
        self._listeners: dict[str, list[Callable[..., None]]] = {event: [] for event in EVENTS}
        self._state = StreamState.STREAMING
        self._emitted = 0
        self._loop = asyncio.get_running_loop()
        self._step_task: asyncio.Task[None] | None = None
        self._step_pending = False
        self._held: tuple[str, Any] | None = None

        self._iterating = False
        self._ready: deque[tuple[str, Any]] = deque()
        self._waiter: asyncio.Future[tuple[str, Any]] | None = None

        self._schedule()

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def emitted(self) -> int:
        """Number of "data" and "error" events emitted so far."""
        return self._emitted

    def on(self, event: str, callback: Callable[..., None]) -> EntryStream:
        """Register a listener for "data", "error" or "end".

        Returns:
            The stream, for chaining.

        Raises:
            ValueError: If the event name is unknown.
        """
        if event not in self._listeners:
            raise ValueError(f"Unknown stream event: {event}")
        self._listeners[event].append(callback)
        return self

    def pause(self) -> None:
        """Stop production after the current step. No-op if paused or ended."""
        if self._state is StreamState.STREAMING:
            self._state = StreamState.PAUSED

    def resume(self) -> None:
        """Restart production. No-op unless paused."""
        if self._state is not StreamState.PAUSED:
            return
        self._state = StreamState.STREAMING
        self._schedule()

    async def aclose(self) -> None:
        """End the stream without emitting "end" and release the source."""
        self._state = StreamState.ENDED
        task = self._step_task
        self._step_task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._held = None
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()
        self._wake((END, None))
        logger.debug("Entry stream closed after %d events", self._emitted)

    def _schedule(self) -> None:
        if self._state is not StreamState.STREAMING or self._step_pending:
            return
        self._step_pending = True
        self._step_task = self._loop.create_task(self._step())

    async def _step(self) -> None:
        try:
            await self._produce_one()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Entry stream listener failed after %d events", self._emitted)
            self._abort()
            return
        finally:
            self._step_pending = False
        self._schedule()

    def _abort(self) -> None:
        # A listener raised; stop producing and end once.
        if self._state is StreamState.ENDED:
            return
        self._held = None
        try:
            self._finish()
        except Exception:
            logger.exception("Entry stream end listener failed")

    async def _produce_one(self) -> None:
        if self._state is not StreamState.STREAMING:
            return

        if self._held is not None:
            outcome, self._held = self._held, None
        else:
            outcome = await self._pull()

        # Paused or closed while waiting on the source.
        if self._state is StreamState.PAUSED:
            self._held = outcome
            return
        if self._state is StreamState.ENDED:
            return

        kind, value = outcome
        if kind == _RECORD:
            self._deliver(value)
        elif kind == _FAILED:
            self._emit_error(value)
            self._finish()
        else:
            self._finish()

    async def _pull(self) -> tuple[str, Any]:
        try:
            record = await anext(self._source)
        except StopAsyncIteration:
            return (_EXHAUSTED, None)
        except ObjfsError as e:
            return (_FAILED, e)
        except Exception as e:
            return (
                _FAILED,
                StorageBackendError(message=f"Listing source failed: {e}", cause=e),
            )
        return (_RECORD, record)

    def _deliver(self, record: Any) -> None:
        try:
            entry = self._normalize(record)
        except UnsupportedRecordError as e:
            self._emit_error(e)
            return
        except Exception as e:
            self._emit_error(
                UnsupportedRecordError(
                    message=f"Failed to normalize record: {e}",
                    record=record,
                    cause=e,
                )
            )
            return
        self._emitted += 1
        self._emit(DATA, entry)

    def _emit_error(self, error: Exception) -> None:
        logger.warning("Entry stream error: %s", error)
        self._emitted += 1
        self._emit(ERROR, error)

    def _finish(self) -> None:
        self._state = StreamState.ENDED
        self._step_task = None
        logger.debug("Entry stream ended after %d events", self._emitted)
        self._emit(END)

    def _emit(self, event: str, *args: Any) -> None:
        for callback in list(self._listeners[event]):
            callback(*args)

    # Async iteration: pause after every event and resume on demand.

    def __aiter__(self) -> EntryStream:
        if not self._iterating:
            self._iterating = True
            self.on(DATA, lambda entry: self._push((DATA, entry)))
            self.on(ERROR, lambda error: self._push((ERROR, error)))
            self.on(END, lambda: self._push((END, None)))
            self.pause()
        return self

    async def __anext__(self) -> DirectoryEntry:
        if not self._iterating:
            self.__aiter__()

        if self._ready:
            kind, value = self._ready.popleft()
        elif self._state is StreamState.ENDED:
            raise StopAsyncIteration
        else:
            self._waiter = self._loop.create_future()
            self.resume()
            try:
                kind, value = await self._waiter
            finally:
                self._waiter = None

        if kind == DATA:
            return value
        if kind == ERROR:
            raise value
        raise StopAsyncIteration

    def _push(self, item: tuple[str, Any]) -> None:
        if item[0] != END:
            self.pause()
        self._wake(item)

    def _wake(self, item: tuple[str, Any]) -> None:
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(item)
        elif self._iterating:
            self._ready.append(item)
