"""
Sync Poller: periodic refresh standing in for a push channel.

``SyncPoller`` owns every ``PollHandle`` it hands out. A handle runs its query once on
attach and again on every interval tick until it is detached. Ticks never overlap a
fetch that is still running; such ticks are skipped. Detach is synchronous: the
ticker and any in-flight fetch are cancelled and nothing is applied afterwards.
"""
import os
import asyncio
import inspect
import itertools
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from .core import SYNC_ATTACHMENTS, SYNC_FETCHES, SYNC_FETCH_FAILURES, SYNC_SKIPPED_TICKS
from .errors import BumpinError

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = int(os.getenv('SYNC_POLL_INTERVAL_MS', '5000'))
FETCH_FAILED_MESSAGE = 'Failed to fetch data. Please try again.'

Query = Callable[[], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[Any]]


class PollHandle:
    """State of one attachment. Read ``data``, ``error`` and ``loading`` from here."""

    def __init__(self, handle_id: int, query: Query, interval_ms: int,
                 on_update: Optional[Callable[[Any], Any]] = None,
                 on_error: Optional[Callable[[str], Any]] = None):
        self.id = handle_id
        self.query = query
        self.interval_ms = interval_ms
        self.on_update = on_update
        self.on_error = on_error
        self.active = True
        self.loading = True
        self.data: Any = None
        self.error: Optional[str] = None
        self.fetch_count = 0
        self.skipped_ticks = 0
        self._ticker: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None

    @property
    def interval(self) -> float:
        return self.interval_ms / 1000.0

    @property
    def fetch_outstanding(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def __repr__(self):
        return f'<PollHandle {self.id} {getattr(self.query, "__qualname__", self.query)} active={self.active}>'


class SyncPoller:

    def __init__(self, sleep: Sleep = asyncio.sleep):
        self._sleep = sleep
        self._handles: Dict[int, PollHandle] = {}
        self._ids = itertools.count(1)

    @property
    def handles(self):
        return list(self._handles.values())

    def attach(self, query: Query, interval_ms: int = DEFAULT_INTERVAL_MS,
               on_update: Optional[Callable[[Any], Any]] = None,
               on_error: Optional[Callable[[str], Any]] = None) -> PollHandle:
        """Start polling ``query``; must be called from a running event loop."""
        if interval_ms <= 0:
            raise ValueError('interval_ms must be positive')
        handle = PollHandle(next(self._ids), query, interval_ms, on_update, on_error)
        self._handles[handle.id] = handle
        handle._ticker = asyncio.ensure_future(self._run(handle))
        SYNC_ATTACHMENTS.inc()
        logger.info(f'sync attach {handle!r} every {interval_ms}ms')
        return handle

    def detach(self, handle: PollHandle) -> None:
        if not handle.active:
            return
        handle.active = False
        if handle._ticker is not None:
            handle._ticker.cancel()
        if handle._inflight is not None:
            handle._inflight.cancel()
        self._handles.pop(handle.id, None)
        SYNC_ATTACHMENTS.dec()
        logger.info(f'sync detach {handle!r} after {handle.fetch_count} fetches')

    def detach_all(self) -> None:
        for handle in list(self._handles.values()):
            self.detach(handle)

    async def _run(self, handle: PollHandle):
        self._start_fetch(handle)
        while handle.active:
            await self._sleep(handle.interval)
            if not handle.active:
                return
            if handle.fetch_outstanding:
                handle.skipped_ticks += 1
                SYNC_SKIPPED_TICKS.inc()
                logger.debug(f'sync tick skipped for {handle!r}: previous fetch still running')
                continue
            self._start_fetch(handle)

    def _start_fetch(self, handle: PollHandle):
        handle.fetch_count += 1
        SYNC_FETCHES.inc()
        handle._inflight = asyncio.ensure_future(self._fetch(handle))

    async def _fetch(self, handle: PollHandle):
        try:
            data = await handle.query()
        except Exception as e:
            if not handle.active:
                return
            SYNC_FETCH_FAILURES.inc()
            logger.warning(f'sync fetch failed for {handle!r}: {e}')
            handle.error = e.message if isinstance(e, BumpinError) else FETCH_FAILED_MESSAGE
            handle.loading = False
            await self._notify(handle, handle.on_error, handle.error)
            return
        if not handle.active:
            return
        handle.data = data
        handle.error = None
        handle.loading = False
        await self._notify(handle, handle.on_update, data)

    async def _notify(self, handle: PollHandle, callback, payload):
        if callback is None:
            return
        try:
            outcome = callback(payload)
            if inspect.isawaitable(outcome):
                # runs inside the fetch task, so detach cancels it too
                await outcome
        except Exception:
            logger.exception(f'sync callback failed for {handle!r}')
