"""
Logging yapılandırması: stdout, tek format.
Uvicorn ve uygulama logger seviyeleri birlikte ayarlanır; işçi thread'leri de aynı handler'ı kullanır.
"""
import logging
import sys

APP_LOGGERS = ("alwaycare", "app")


def setup_logging(
    level: int | str = logging.INFO,
    format_string: str | None = None,
) -> None:
    if format_string is None:
        format_string = "%(asctime)s [%(levelname)s] %(name)s (%(threadName)s): %(message)s"
    logging.basicConfig(
        level=level,
        format=format_string,
        stream=sys.stdout,
        force=True,
    )
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
    for name in APP_LOGGERS:
        logging.getLogger(name).setLevel(level)
    # httpx her isteği INFO'da loglar; polling istemcisinde gürültü olmasın
    logging.getLogger("httpx").setLevel(logging.WARNING)
