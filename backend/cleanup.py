"""Cleanup: removes expired files, expired pastes and orphaned blobs.

Runs inside the app as an ``ExpirySweeper`` started by the lifespan.
Run standalone for a single pass: python cleanup.py
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field

from api.files.services.files_service import FileLifecycleManager
from api.pastes.services.pastes_service import PasteLifecycleManager

logger = logging.getLogger(__name__)


@dataclass
class CleanupReport:
    files: int = 0
    pastes: int = 0
    orphans: int = 0
    failures: list[str] = field(default_factory=list)


async def run_cleanup(
    files: FileLifecycleManager,
    pastes: PasteLifecycleManager,
    orphan_grace: float,
    timeout: float | None = None,
) -> CleanupReport:
    """One sweep. A failing or timed out step is logged and the remaining steps still run.

    ``timeout`` bounds each step separately.
    """
    report = CleanupReport()
    steps = (
        ("files", lambda: files.cleanup_expired(timeout=timeout)),
        ("pastes", lambda: pastes.cleanup_expired(timeout=timeout)),
        ("orphans", lambda: files.reap_orphans(orphan_grace, timeout=timeout)),
    )
    for name, step in steps:
        try:
            setattr(report, name, await step())
        except Exception:
            logger.exception("Cleanup step %r failed", name)
            report.failures.append(name)
    return report


class ExpirySweeper:
    """Runs ``run_cleanup`` every ``interval`` seconds until stopped."""

    def __init__(
        self,
        files: FileLifecycleManager,
        pastes: PasteLifecycleManager,
        interval: float = 3600,
        orphan_grace: float = 3600,
        timeout: float | None = None,
    ):
        self.files = files
        self.pastes = pastes
        self.interval = interval
        self.orphan_grace = orphan_grace
        self.timeout = timeout
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="expiry-sweeper")
        logger.info("Expiry sweeper started (every %ss)", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Expiry sweeper stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            report = await run_cleanup(self.files, self.pastes, self.orphan_grace, self.timeout)
            logger.debug("Sweep finished: %s", report)


async def _main() -> None:
    from config import get_settings
    from logging_config import configure_logging
    from wiring import build_services

    settings = get_settings()
    configure_logging(settings.log_level)
    services = build_services(settings)
    await services.start()
    try:
        report = await run_cleanup(
            services.files,
            services.pastes,
            settings.orphan_grace_seconds,
            timeout=settings.sweep_timeout_seconds,
        )
        logger.info(
            "Removed %d files, %d pastes, %d orphaned blobs",
            report.files,
            report.pastes,
            report.orphans,
        )
    finally:
        await services.close()


if __name__ == "__main__":
    asyncio.run(_main())
