import logging
import threading
from dataclasses import dataclass
from typing import Callable

from focuser.errors import ReloadFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReloadResult:
    success: bool
    error_message: str | None = None


class SyncTrigger:
    """
    Notifica all'host dell'estensione che la lista canonica e' cambiata.
    Fire-and-forget: il chiamante non aspetta il reload, l'esito arriva
    alla callback. Lo stato persistito non viene mai toccato.
    """

    def __init__(self, host, identifier: str):
        self.host = host
        self.identifier = identifier

    def reload_sync(self) -> ReloadResult:
        try:
            self.host.reload_content_blocker(self.identifier)
        except ReloadFailure as exc:
            logger.warning("Reload content blocker fallito: %s", exc)
            return ReloadResult(False, str(exc))
        except Exception as exc:
            logger.exception("Errore inatteso durante il reload di %s", self.identifier)
            return ReloadResult(False, str(exc) or exc.__class__.__name__)
        return ReloadResult(True)

    def reload(self, callback: Callable[[ReloadResult], None] | None = None) -> threading.Thread:
        def _run():
            result = self.reload_sync()
            if callback is not None:
                callback(result)

        t = threading.Thread(target=_run, name=f"reload-{self.identifier}")
        t.daemon = True
        t.start()
        return t
