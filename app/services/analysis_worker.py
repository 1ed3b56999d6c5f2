"""
Analiz işçisi: pending kaydı claim eder, görseli analiz eder, terminal duruma geçirir.
Tetikleme: yüklemeden hemen sonra (submit, arka plan thread) veya periyodik tarama (AnalysisSweeper).
Claim'i kaybeden işçi hiçbir şey yazmaz; failed terminaldir, otomatik tekrar yok.
"""
import logging
import os
import socket
import threading
import time
import uuid
from typing import Callable

from app.core.errors import InvalidTransition, NotFound
from app.schemas.analysis import CompletedOutcome, FailedOutcome
from app.services.analyze import RiskAnalyzer
from app.services.file_storage import FileStorage
from app.services.record_store import RecordStore

logger = logging.getLogger(__name__)

ThreadFactory = Callable[[Callable[[int], None], tuple[int, ...]], threading.Thread]


def default_worker_id() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


class AnalysisWorker:
    def __init__(
        self,
        store: RecordStore,
        analyzer: RiskAnalyzer,
        storage: FileStorage,
        *,
        worker_id: str | None = None,
        claim_timeout: float | None = None,
        thread_factory: ThreadFactory | None = None,
    ) -> None:
        self.store = store
        self.analyzer = analyzer
        self.storage = storage
        self.worker_id = worker_id or default_worker_id()
        # Bu süreden eski claim'ler (çöken işçi) yeniden alınabilir
        self.claim_timeout = claim_timeout
        self.thread_factory = thread_factory
        self._threads: dict[int, threading.Thread] = {}
        self._lock = threading.Lock()

    def submit(self, record_id: int) -> bool:
        """Fire-and-forget analiz. Aynı kayıt zaten bu süreçte işleniyorsa False."""
        with self._lock:
            if record_id in self._threads:
                return False
            thread = self._make_thread(record_id)
            self._threads[record_id] = thread
        try:
            thread.start()
        except RuntimeError:
            # Başlamayan thread kaydı kilitlemesin; tarama veya yeni submit alabilir
            self.mark_finished(record_id)
            raise
        return True

    def is_running(self, record_id: int) -> bool:
        with self._lock:
            return record_id in self._threads

    def mark_finished(self, record_id: int) -> None:
        with self._lock:
            self._threads.pop(record_id, None)

    def run(self, record_id: int) -> None:
        """Thread hedefi; hata süreci düşürmez."""
        try:
            self.process(record_id)
        except Exception:
            logger.exception("analysis worker crashed on image record %s", record_id)
        finally:
            self.mark_finished(record_id)

    def process(self, record_id: int) -> str | None:
        """
        Claim → analiz → transition. Terminal durumu döner; claim alınamadıysa
        veya terminal yazım reddedildiyse None.
        """
        token = f"{self.worker_id}:{uuid.uuid4().hex[:12]}"
        if not self.store.claim(record_id, token, stale_after=self.claim_timeout):
            logger.debug("image record %s not claimable by %s", record_id, self.worker_id)
            return None
        t0 = time.perf_counter()
        try:
            record = self.store.load(record_id)
            content, mime = self.storage.read(record)
            result = self.analyzer.analyze(content, mime)
            outcome = CompletedOutcome.from_result(result)
        except Exception as e:
            # I/O, model, doğrulama, timeout: hepsi terminal failed
            logger.warning("analysis of image record %s failed: %s", record_id, e)
            outcome = FailedOutcome(error_message=str(e) or type(e).__name__)
        try:
            record = self.store.transition(record_id, outcome, claim_token=token)
        except InvalidTransition as e:
            logger.warning("image record %s: terminal write rejected: %s", record_id, e)
            return None
        except NotFound:
            logger.info("image record %s was deleted during analysis", record_id)
            return None
        logger.info(
            "image record %s analyzed: status=%s duration_ms=%d",
            record_id,
            record.status,
            int((time.perf_counter() - t0) * 1000),
        )
        return record.status

    def sweep(self, limit: int = 10) -> int:
        """En eski pending kayıtları sırayla işler; terminal duruma geçirilen kayıt sayısını döner."""
        processed = 0
        for record in self.store.list_pending(limit):
            if record.id is None or self.is_running(record.id):
                continue
            if self.process(record.id) is not None:
                processed += 1
        if processed:
            logger.info("analysis sweep processed %d record(s)", processed)
        return processed

    def _make_thread(self, record_id: int) -> threading.Thread:
        factory = self.thread_factory or self._default_thread_factory
        return factory(self.run, (record_id,))

    @staticmethod
    def _default_thread_factory(target: Callable[[int], None], args: tuple[int, ...]) -> threading.Thread:
        return threading.Thread(target=target, args=args, daemon=True)


class AnalysisSweeper:
    """Periyodik tarama thread'i. interval <= 0 ise başlamaz."""

    def __init__(self, worker: AnalysisWorker, interval: float, batch: int = 10) -> None:
        self.worker = worker
        self.interval = interval
        self.batch = batch
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.interval <= 0 or self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="analysis-sweeper", daemon=True)
        self._thread.start()
        logger.info("analysis sweeper started (every %.1fs, batch %d)", self.interval, self.batch)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.worker.sweep(self.batch)
            except Exception:
                logger.exception("analysis sweep failed")
            if self._stop.wait(self.interval):
                break
