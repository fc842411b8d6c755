from __future__ import annotations

import asyncio
import logging
import signal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.common.models import ScanResultOut
from backend.common.config import Settings, get_settings
from backend.common.db import SessionLocal
from backend.common.logging_utils import configure_logging
from backend.dedup_service.app.scanner import DuplicateScanner

logger = logging.getLogger("dedup_worker")


class DuplicateScanWorker:
    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession] = SessionLocal,
    ) -> None:
        self.settings = settings
        self.session_factory = session_factory
        self._stopping = False
        configure_logging(service_name="dedup_service")
        signal.signal(signal.SIGTERM, self._handle_shutdown)
        signal.signal(signal.SIGINT, self._handle_shutdown)
        logger.info(
            "Duplicate scan worker initialized, interval %ds", settings.scan_interval_seconds
        )

    def _handle_shutdown(self, signum: int, frame: Optional[object]) -> None:  # noqa: ARG002
        logger.info("Received shutdown signal %s", signum)
        self._stopping = True

    async def run_once(self) -> ScanResultOut:
        async with self.session_factory() as session:
            return await DuplicateScanner(session).scan()

    async def run(self) -> None:
        while not self._stopping:
            try:
                await self.run_once()
            except Exception as exc:
                logger.error("Duplicate scan failed: %s", exc, exc_info=True)
            await self._sleep(self.settings.scan_interval_seconds)

    async def _sleep(self, seconds: int) -> None:
        # Short ticks so a shutdown signal is honoured quickly
        for _ in range(max(seconds, 1)):
            if self._stopping:
                return
            await asyncio.sleep(1)


def start_worker() -> None:
    worker = DuplicateScanWorker(get_settings())
    asyncio.run(worker.run())


if __name__ == "__main__":
    start_worker()
