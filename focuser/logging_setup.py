"""Configurazione del logging su file e console."""

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(log_path: Path, level: int = logging.INFO) -> logging.Logger:
    root = logging.getLogger("focuser")
    root.setLevel(level)

    if root.handlers:
        return root

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    log_path = Path(log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)

    root.addHandler(file_handler)
    root.addHandler(stream_handler)
    return root
