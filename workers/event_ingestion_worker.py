# workers/event_ingestion_worker.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

from core.usecases.dispatch_chain_event_use_case import DispatchChainEventUseCase, DispatchResult


class EventIngestionWorker:
    """
    Single-threaded executor for one partition of the event stream.

    Events of a partition are dispatched strictly in submission order, one at
    a time. `submit` resolves with the dispatch result once the event is
    applied; a failure (price unavailable, storage down) is raised back to the
    submitter so the host can redeliver. Nothing is retried here.
    """

    def __init__(
        self,
        *,
        name: str,
        dispatcher: DispatchChainEventUseCase,
        logger: logging.Logger | None = None,
    ) -> None:
        self._name = name
        self._dispatcher = dispatcher
        self._logger = logger or logging.getLogger(self.__class__.__name__)

        self._queue: asyncio.Queue[Tuple[Dict[str, Any], asyncio.Future]] = asyncio.Queue()
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        """Start the consume loop in background."""
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name=f"ingestion-{self._name}")

    async def stop(self) -> None:
        """Stop the consume loop; events not yet dispatched are cancelled."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        while not self._queue.empty():
            _, fut = self._queue.get_nowait()
            if not fut.done():
                fut.cancel()
            self._queue.task_done()

    async def submit(self, raw: Dict[str, Any]) -> DispatchResult:
        """
        Enqueue one event and wait for its dispatch.

        Raises:
            Whatever the dispatcher raised for this event.
        """
        fut: asyncio.Future = asyncio.get_running_loop().create_future()
        await self._queue.put((raw, fut))
        return await fut

    async def _run(self) -> None:
        while True:
            raw, fut = await self._queue.get()
            try:
                if fut.done():
                    continue
                try:
                    result = await self._dispatcher.execute(raw)
                except asyncio.CancelledError:
                    fut.cancel()
                    raise
                except Exception as exc:
                    self._logger.exception(
                        "Event dispatch failed worker=%s tx=%s: %s",
                        self._name,
                        _tx_of(raw),
                        exc,
                    )
                    if not fut.done():
                        fut.set_exception(exc)
                else:
                    if not fut.done():
                        fut.set_result(result)
            finally:
                self._queue.task_done()


def _tx_of(raw: Dict[str, Any]) -> Optional[str]:
    if not isinstance(raw, dict):
        return None
    return raw.get("transactionHash") or raw.get("transaction_hash")
