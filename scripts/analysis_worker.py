#!/usr/bin/env python3
"""Ayrı süreçte analiz işçisi: pending kayıtları periyodik tarar. Proje kökünden: python3 scripts/analysis_worker.py
   API ile aynı DATABASE_URL ve UPLOAD_DIR kullanılmalı (RECORD_STORE=sql); memory deposu süreçler arası paylaşılmaz."""
import logging
import signal
import sys
import threading
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from dotenv import load_dotenv  # noqa: E402

load_dotenv(ROOT / ".env")

from app.core.config import settings  # noqa: E402
from app.core.database import engine, init_db  # noqa: E402
from app.logging import setup_logging  # noqa: E402
from app.services.analysis_worker import AnalysisWorker  # noqa: E402
from app.services.analyze import OpenAIRiskAnalyzer  # noqa: E402
from app.services.file_storage import FileStorage  # noqa: E402
from app.services.record_store import build_record_store  # noqa: E402

log = logging.getLogger("alwaycare.worker")


def main() -> int:
    setup_logging(level=settings.log_level)
    if settings.record_store != "sql":
        log.error("RECORD_STORE=%s: separate worker needs the sql backend", settings.record_store)
        return 2
    init_db()
    storage = FileStorage(settings.upload_dir, settings.upload_max_bytes)
    store = build_record_store("sql", engine=engine, on_delete=storage.release)
    worker = AnalysisWorker(
        store,
        OpenAIRiskAnalyzer(),
        storage,
        claim_timeout=settings.analysis_claim_timeout_seconds,
    )
    interval = settings.analysis_sweep_interval_seconds if settings.analysis_sweep_interval_seconds > 0 else 30.0
    stop = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop.set())
    signal.signal(signal.SIGTERM, lambda *_: stop.set())
    log.info("worker %s started (every %.1fs, batch %d)", worker.worker_id, interval, settings.analysis_sweep_batch)
    while not stop.is_set():
        try:
            worker.sweep(settings.analysis_sweep_batch)
        except Exception:
            log.exception("analysis sweep failed")
        stop.wait(interval)
    log.info("worker %s stopped", worker.worker_id)
    return 0


if __name__ == "__main__":
    sys.exit(main())
