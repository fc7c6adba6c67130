import logging
import threading
from pathlib import Path
from typing import Callable

from focuser.errors import ReloadFailure
from focuser.extension.request_handler import ContentBlockerRequestHandler

logger = logging.getLogger(__name__)

Listener = Callable[[str, Path], None]


class ExtensionHost:
    """
    Host locale delle estensioni content blocker.
    reload_content_blocker() scarta il documento attivo e lo rigenera.

    I reload della stessa estensione sono serializzati: un reload partito dopo
    una modifica rilegge sempre la lista e scrive per ultimo.
    """

    def __init__(self):
        self._handlers: dict[str, ContentBlockerRequestHandler] = {}
        self._documents: dict[str, Path] = {}
        self._reload_locks: dict[str, threading.Lock] = {}
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def register(self, identifier: str, handler: ContentBlockerRequestHandler) -> None:
        with self._lock:
            self._handlers[identifier] = handler
            self._reload_locks.setdefault(identifier, threading.Lock())

    def add_listener(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def active_document(self, identifier: str) -> Path | None:
        with self._lock:
            return self._documents.get(identifier)

    def reload_content_blocker(self, identifier: str) -> Path:
        with self._lock:
            handler = self._handlers.get(identifier)
            reload_lock = self._reload_locks.get(identifier)

        if handler is None:
            raise ReloadFailure(f"Estensione sconosciuta: {identifier}")

        # Lettura, compilazione e scrittura in un'unica sezione critica
        with reload_lock:
            with self._lock:
                self._documents.pop(identifier, None)

            try:
                path = handler.begin_request()
            except Exception as exc:
                raise ReloadFailure(f"Estensione {identifier} fallita: {exc}") from exc

            with self._lock:
                self._documents[identifier] = path
                listeners = list(self._listeners)

        logger.info("Regole ricaricate per %s: %s", identifier, path)
        self._notify(listeners, identifier, path)
        return path

    def _notify(self, listeners: list[Listener], identifier: str, path: Path) -> None:
        # Il reload e' gia' riuscito: un listener difettoso non lo rende fallito
        for listener in listeners:
            try:
                listener(identifier, path)
            except Exception:
                logger.exception("Listener fallito per %s", identifier)
