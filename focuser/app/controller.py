import threading
import uuid
from typing import Callable, Iterable

from focuser.config.blocklist_store import AddResult, BlocklistStore
from focuser.errors import AuthorizationError
from focuser.shield.shield_manager import ShieldManager
from focuser.state.statistics_store import StatisticsManager
from focuser.sync.sync_trigger import ReloadResult, SyncTrigger


class AppController:
    def __init__(
        self,
        log_callback: Callable[[str], None],
        store: BlocklistStore,
        sync_trigger: SyncTrigger,
        shield: ShieldManager,
        statistics: StatisticsManager | None = None,
    ):
        self.log = log_callback
        self.store = store
        self.sync_trigger = sync_trigger
        self.shield = shield
        self.statistics = statistics

    @property
    def is_running(self) -> bool:
        return self.shield.is_active

    # =========================
    # LISTA SITI
    # =========================

    def add_site(self, raw_input: str) -> AddResult:
        result = self.store.add(raw_input)

        if not result.added:
            if result.reason == "duplicate":
                self.log(f"[SITI] Dominio gia' presente: {result.rejection.domain}")
            else:
                self.log("[SITI] Dominio non valido")
            return result

        self.log(f"[SITI] Aggiunto dominio bloccato: {result.site.domain}")
        self._after_change(
            "Sito aggiunto! Chiudi e riapri le schede del browser per applicare il blocco.",
            "Sito aggiunto ma il reload del blocker e' fallito: {error}",
        )
        return result

    def remove_sites(self, site_ids: Iterable[uuid.UUID]):
        ids = list(site_ids)
        before = {site.id: site.domain for site in self.store.sites}
        sites = self.store.remove_many(ids)

        for site_id in ids:
            if site_id in before:
                self.log(f"[SITI] Rimosso dominio bloccato: {before[site_id]}")

        # Un solo reload per l'intero batch
        self._after_change(
            "Sito rimosso! Chiudi e riapri le schede del browser per applicare le modifiche.",
            "Sito rimosso ma il reload del blocker e' fallito: {error}",
        )
        return sites

    def remove_site(self, site_id: uuid.UUID):
        return self.remove_sites([site_id])

    def _after_change(self, success_message: str, failure_template: str) -> threading.Thread:
        if self.shield.is_active:
            try:
                self.shield.apply_domain_shield(self.store.domains())
            except Exception as e:
                self.log(f"[ERRORE] Aggiornamento shield fallito: {e}")

        def _on_reload(result: ReloadResult):
            if result.success:
                self.log(f"[SYNC] {success_message}")
            else:
                error = result.error_message or "Errore sconosciuto"
                self.log(f"[SYNC] {failure_template.format(error=error)}")

        return self.sync_trigger.reload(_on_reload)

    # =========================
    # SHIELD DI SISTEMA
    # =========================

    def enable_shield(self) -> bool:
        if self.shield.is_active:
            self.log("[SHIELD] Shield gia' attivo")
            return True

        try:
            self.shield.request_authorization()
        except AuthorizationError as e:
            self.log(f"[SHIELD] {e}. Resta attivo solo il content blocker")
            return False

        self.log("[SHIELD] Avvio shield di sistema...")
        try:
            self.shield.apply_domain_shield(self.store.domains())
        except Exception as e:
            self.log(f"[ERRORE] Avvio fallito: {e}")
            return False

        self.log("[SHIELD] Shield ATTIVO")
        return True

    def disable_shield(self) -> None:
        if not self.shield.is_active:
            self.log("[SHIELD] Shield gia' fermo")
            return

        try:
            self.shield.clear_shield()
            self.log("[SHIELD] Shield DISATTIVO")
        except Exception as e:
            self.log(f"[ERRORE] Arresto fallito: {e}")

    # =========================
    # STATISTICHE
    # =========================

    def record_resist(self) -> None:
        if self.statistics is None:
            return
        self.statistics.record_resist()
        self.log(f"[STATS] Resistenze totali: {self.statistics.statistics.total_resists}")
