import logging
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

from focuser.errors import DecodeError

logger = logging.getLogger(__name__)

# Date come secondi dalla data di riferimento Apple (2001-01-01 UTC)
REFERENCE_DATE = datetime(2001, 1, 1, tzinfo=timezone.utc)


def encode_date(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - REFERENCE_DATE) / timedelta(seconds=1)


def decode_date(value) -> datetime:
    # bool e' sottoclasse di int
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(f"Data non numerica: {value!r}")
    try:
        return REFERENCE_DATE + timedelta(seconds=value)
    except (OverflowError, ValueError) as exc:
        raise DecodeError(f"Data fuori intervallo: {value!r}") from exc


def atomic_write(path: Path, data: bytes) -> None:
    """
    Scrive su un file temporaneo nella stessa directory e lo sostituisce
    al file finale: chi legge vede il vecchio contenuto o il nuovo, mai uno
    troncato.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class KeyValueStore:
    """
    Area chiave-valore condivisa tra processi.
    I valori sono bytes gia' serializzati: la codifica spetta al chiamante.
    """

    def get_data(self, key: str) -> bytes | None:
        raise NotImplementedError

    def set_data(self, key: str, data: bytes) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def is_accessible(self) -> bool:
        return True


class SharedDefaults(KeyValueStore):
    """
    Un file <chiave>.json per chiave dentro la directory del gruppo.
    Ogni scrittura sostituisce l'intero valore.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_data(self, key: str) -> bytes | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_bytes()
        except OSError as exc:
            logger.warning("Lettura chiave %s fallita: %s", key, exc)
            return None

    def set_data(self, key: str, data: bytes) -> None:
        atomic_write(self._path(key), data)

    def remove(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()

    def is_accessible(self) -> bool:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        return os.access(self.directory, os.R_OK | os.W_OK)
