"""Root logger setup: console always, log files in production."""

import logging
from pathlib import Path

from viewmaxx.config.settings import Settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(settings: Settings, log_dir: str = "logs") -> None:
    root = logging.getLogger()
    root.setLevel(settings.LOG_LEVEL.upper())

    # Idempotent: create_app may run more than once per process (tests)
    for handler in list(root.handlers):
        if getattr(handler, "_viewmaxx", False):
            root.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if settings.is_production:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        error_file = logging.FileHandler(Path(log_dir) / "error.log")
        error_file.setLevel(logging.ERROR)
        handlers.append(error_file)
        handlers.append(logging.FileHandler(Path(log_dir) / "combined.log"))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._viewmaxx = True  # type: ignore[attr-defined]
        root.addHandler(handler)
