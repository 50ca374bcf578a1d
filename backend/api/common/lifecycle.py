"""Generic lifecycle for expiring, usage-limited records.

Files and pastes share the same shape: look a record up, refuse it when it is
expired or exhausted, bump its counter atomically, and sweep it once it has
expired. ``LifecycleManager`` implements that once; subclasses name the
counter and limit fields and add their own storage steps.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Generic, Protocol, TypeVar

from pydantic import BaseModel

from api.common.gating import Access, check_access, utcnow
from errors import ExpiredError, InvalidInputError, LimitExceededError

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class RecordRepository(Protocol[RecordT]):
    """Metadata store for one record type.

    ``find``, ``increment`` and ``delete`` raise ``NotFoundError`` when no row
    matches; any other failure surfaces as ``StorageFailureError``.
    """

    async def store(self, record: RecordT) -> None: ...

    async def find(self, record_id: str) -> RecordT: ...

    async def increment(self, record_id: str) -> None: ...

    async def delete(self, record_id: str) -> None: ...

    async def delete_expired(self, now: datetime) -> list[RecordT]: ...


def validate_ttl(ttl: timedelta) -> None:
    if ttl <= timedelta(0):
        raise InvalidInputError("ttl must be positive")


class LifecycleManager(Generic[RecordT]):
    resource = "record"
    counter_field = ""
    limit_field = ""

    def __init__(self, repository: RecordRepository[RecordT], clock: Callable[[], datetime] = utcnow):
        self.repository = repository
        self.clock = clock

    def _deadline(self, timeout: float | None):
        return asyncio.timeout(timeout)

    async def _find(self, record_id: str) -> RecordT:
        return await self.repository.find(record_id)

    def _gate(self, record: RecordT) -> None:
        access = check_access(
            self.clock(),
            record.expires_at,
            getattr(record, self.counter_field),
            getattr(record, self.limit_field),
        )
        if access is Access.EXPIRED:
            logger.warning("Refused %s %s: expired", self.resource, record.id)
            raise ExpiredError(self.resource, record.id)
        if access is Access.LIMIT_EXCEEDED:
            logger.warning("Refused %s %s: usage limit reached", self.resource, record.id)
            raise LimitExceededError(self.resource, record.id)

    async def _increment(self, record: RecordT) -> RecordT:
        """Bump the stored counter and return the record as the caller now sees it."""
        await self.repository.increment(record.id)
        count = getattr(record, self.counter_field) + 1
        return record.model_copy(update={self.counter_field: count})

    async def _access(self, record_id: str) -> RecordT:
        record = await self._find(record_id)
        self._gate(record)
        return await self._increment(record)

    async def _release(self, records: list[RecordT]) -> None:
        """Hook for resources held outside the metadata store."""

    async def cleanup_expired(self, timeout: float | None = None) -> int:
        """Delete every record past its expiry. Returns how many were removed."""
        try:
            async with self._deadline(timeout):
                removed = await self.repository.delete_expired(self.clock())
                await self._release(removed)
        except Exception:
            logger.error("Failed to clean up expired %ss", self.resource, exc_info=True)
            raise
        if removed:
            logger.info("Removed %d expired %ss", len(removed), self.resource)
        else:
            logger.debug("No expired %ss to remove", self.resource)
        return len(removed)
