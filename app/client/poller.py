"""
Polling istemcisi: tamamlanan analizleri ve istatistikleri sabit aralıkla yeniden çeker.
Her tur iki bağımsız istek; biri başarısız olursa diğerinin sonucu yine uygulanır.
Başarısız istek önceki durumu korur; stop() sonrası hiçbir sonuç uygulanmaz.
"""
import asyncio
import logging
from typing import Callable

import httpx

from app.client.normalize import ImageView, StatsView, normalize_image_list, normalize_stats
from app.core.config import settings

logger = logging.getLogger(__name__)

COMPLETED_PATH = "/api/analysis/completed"
STATS_PATH = "/api/analysis/stats"


class AnalysisPoller:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        interval: float | None = None,
        on_error: Callable[[str], None] | None = None,
        *,
        completed_path: str = COMPLETED_PATH,
        stats_path: str = STATS_PATH,
    ) -> None:
        self.http_client = http_client
        self.interval = settings.poll_interval_seconds if interval is None else interval
        self.on_error = on_error
        self.completed_path = completed_path
        self.stats_path = stats_path
        self.analyses: list[ImageView] = []
        self.stats: StatsView | None = None
        self._timer: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def start(self) -> None:
        """Hemen bir tur çalıştırır, sonra her interval'de bir tur. Çalışan bir event loop içinde çağrılmalı."""
        if self.running:
            return
        self._stopped = False
        self._spawn_refresh()
        self._timer = asyncio.create_task(self._tick(), name="analysis-poller")

    async def stop(self) -> None:
        """Zamanlayıcıyı ve uçuştaki tüm turları iptal eder."""
        self._stopped = True
        tasks = list(self._inflight)
        if self._timer is not None:
            tasks.append(self._timer)
            self._timer = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()

    async def __aenter__(self) -> "AnalysisPoller":
        self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.stop()

    async def refresh(self) -> None:
        await asyncio.gather(self.fetch_analyses(), self.fetch_stats())

    async def fetch_analyses(self) -> bool:
        try:
            resp = await self.http_client.get(self.completed_path)
            resp.raise_for_status()
            items = normalize_image_list(resp.json())
        except Exception as e:
            if self._stopped:
                return False
            logger.error("Error fetching analyses: %s", e)
            if self.on_error is not None:
                self.on_error("Failed to load analyses")
            return False
        if self._stopped:
            return False
        self.analyses = items
        return True

    async def fetch_stats(self) -> bool:
        try:
            resp = await self.http_client.get(self.stats_path)
            resp.raise_for_status()
            stats = normalize_stats(resp.json())
        except Exception as e:
            # İstatistikler opsiyonel; kullanıcıya gösterilmez
            logger.debug("Error fetching stats: %s", e)
            return False
        if self._stopped:
            return False
        self.stats = stats
        return True

    def _spawn_refresh(self) -> None:
        # Önceki tur bitmemiş olabilir; turlar üst üste binebilir
        task = asyncio.create_task(self.refresh())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self._spawn_refresh()
