"""Pastes service: lifecycle of shared text.

Paste content is stored inline in the metadata store, so there is nothing to
compensate on failure.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable

from api.common.gating import UNLIMITED, utcnow
from api.common.lifecycle import LifecycleManager, validate_ttl
from api.pastes.dto.paste import PasteRecord
from api.pastes.repositories.pastes_repository import PastesRepository
from api.pastes.services.language import UNKNOWN_LANGUAGE, detect_language
from errors import InvalidInputError
from ids import new_token

logger = logging.getLogger(__name__)


class PasteLifecycleManager(LifecycleManager[PasteRecord]):
    resource = "paste"
    counter_field = "views"
    limit_field = "max_views"

    def __init__(
        self,
        repository: PastesRepository,
        detector: Callable[[str], str] = detect_language,
        clock: Callable[[], datetime] = utcnow,
    ):
        super().__init__(repository, clock)
        self.detector = detector

    def _detect_language(self, content: str) -> str:
        try:
            return self.detector(content) or UNKNOWN_LANGUAGE
        except Exception:
            logger.warning("Language detection failed, using %r", UNKNOWN_LANGUAGE, exc_info=True)
            return UNKNOWN_LANGUAGE

    async def create(
        self,
        content: str,
        language: str | None,
        title: str | None,
        ttl: timedelta,
        max_views: int = UNLIMITED,
        timeout: float | None = None,
    ) -> PasteRecord:
        if not content:
            logger.warning("Attempt to create paste with empty content")
            raise InvalidInputError("paste content must not be empty")
        validate_ttl(ttl)

        now = self.clock()
        record = PasteRecord(
            id=new_token(),
            content=content,
            language=language or self._detect_language(content),
            title=title or None,
            views=0,
            max_views=max_views,
            created_at=now,
            expires_at=now + ttl,
        )
        async with self._deadline(timeout):
            await self.repository.store(record)

        logger.info("Paste %s created (language=%s)", record.id, record.language)
        return record

    async def get(self, paste_id: str, timeout: float | None = None) -> PasteRecord:
        """Return the paste and count one view."""
        async with self._deadline(timeout):
            record = await self._access(paste_id)
        logger.info("Paste %s viewed (%d/%d)", paste_id, record.views, record.max_views)
        return record

    async def get_raw(self, paste_id: str, timeout: float | None = None) -> str:
        """Content only. Counts a view exactly like ``get`` does."""
        record = await self.get(paste_id, timeout=timeout)
        return record.content

    async def delete(self, paste_id: str, timeout: float | None = None) -> None:
        async with self._deadline(timeout):
            await self.repository.delete(paste_id)
        logger.info("Paste %s deleted", paste_id)
