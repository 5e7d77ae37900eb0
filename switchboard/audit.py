"""
Audit logging for integration lifecycle events.

Audit is not on the critical path. `AuditLogger.emit()` only enqueues the
event: it never awaits I/O, never raises, and drops events (with a
warning) when the queue is full. A background worker, or an explicit
`drain()`, delivers queued events to an AuditSink. Sink failures are
logged and discarded.

Event details carry credential keys only, never values.

Usage:
    audit = AuditLogger(MongoAuditSink(db))
    audit.start()
    audit.emit(AuditEvent(tenant_id="acme", integration_id="stripe", action="connected"))
    ...
    await audit.stop()
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from switchboard.integrations.base import AuditFailure

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1000


def _utc_now() -> datetime:
    return datetime.now(UTC)


class AuditEvent(BaseModel):
    """
    One lifecycle event.

    Stored in MongoDB 'integration_logs' collection.
    """

    tenant_id: str = Field(..., description="Human-facing tenant slug")
    tenant_record_id: str | None = Field(None, description="Internal tenant record id")
    integration_id: str
    action: str
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utc_now)


# =============================================================================
# Sinks
# =============================================================================


class AuditSink(ABC):
    """Append-only destination for audit events."""

    @abstractmethod
    async def append(self, event: AuditEvent) -> None:
        """Persist one event. May raise AuditFailure."""
        ...


class InMemoryAuditSink(AuditSink):
    """Keeps events in a list. Used in tests and local development."""

    def __init__(self, fail: bool = False):
        self.events: list[AuditEvent] = []
        self.fail = fail

    async def append(self, event: AuditEvent) -> None:
        if self.fail:
            raise AuditFailure("Audit sink unavailable", event.integration_id)
        self.events.append(event)


class MongoAuditSink(AuditSink):
    """Writes events to the integration_logs collection."""

    def __init__(self, database, collection_name: str = "integration_logs"):
        """
        Args:
            database: Motor database handle
            collection_name: Target collection
        """
        self._collection = database[collection_name]

    async def append(self, event: AuditEvent) -> None:
        from pymongo.errors import PyMongoError

        try:
            await self._collection.insert_one(event.model_dump())
        except PyMongoError as e:
            raise AuditFailure(f"Failed to insert audit event: {e}", event.integration_id) from e


# =============================================================================
# Logger
# =============================================================================


class AuditLogger:
    """Best-effort, non-blocking audit emitter backed by a bounded queue."""

    def __init__(self, sink: AuditSink, queue_size: int = DEFAULT_QUEUE_SIZE):
        self._sink = sink
        self._queue: asyncio.Queue[AuditEvent] = asyncio.Queue(maxsize=queue_size)
        self._worker: asyncio.Task | None = None
        self.dropped = 0

    @property
    def sink(self) -> AuditSink:
        return self._sink

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def emit(self, event: AuditEvent) -> None:
        """Queue an event for delivery. Never blocks, never raises."""
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                f"[{event.integration_id}] Audit queue full, dropped '{event.action}' "
                f"event for tenant {event.tenant_id}"
            )

    def append(
        self,
        tenant_id: str,
        integration_id: str,
        action: str,
        details: dict[str, Any] | None = None,
        *,
        tenant_record_id: str | None = None,
    ) -> None:
        """Convenience wrapper around emit()."""
        self.emit(
            AuditEvent(
                tenant_id=tenant_id,
                tenant_record_id=tenant_record_id,
                integration_id=integration_id,
                action=action,
                details=details or {},
            )
        )

    async def _deliver(self, event: AuditEvent) -> None:
        try:
            await self._sink.append(event)
        except Exception as e:
            # Audit is best effort; the lifecycle operation already succeeded
            logger.warning(f"[{event.integration_id}] Audit event '{event.action}' discarded: {e}")

    async def drain(self) -> int:
        """Deliver every queued event now. Returns the number processed."""
        processed = 0
        while True:
            try:
                event = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return processed
            try:
                await self._deliver(event)
            finally:
                self._queue.task_done()
            processed += 1

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._deliver(event)
            finally:
                self._queue.task_done()

    def start(self) -> None:
        """Start the background delivery worker."""
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="audit-worker")
            logger.info("Audit worker started")

    async def stop(self) -> None:
        """Flush pending events and stop the worker."""
        if self._worker is None:
            await self.drain()
            return
        await self._queue.join()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Audit worker stopped")


__all__ = [
    "AuditEvent",
    "AuditLogger",
    "AuditSink",
    "InMemoryAuditSink",
    "MongoAuditSink",
]
