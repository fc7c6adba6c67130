import logging
from pathlib import Path
from typing import Callable, Iterable

import focuser.system.network as system_network
import focuser.system.privileges as privileges
from focuser.config.blocklist_store import normalize_domain
from focuser.errors import AuthorizationError
from focuser.shield.dns_server import BlockResolver, start_dns_server, upstream_servers
from focuser.state.shield_state import load_state, save_state

logger = logging.getLogger(__name__)


class ShieldManager:
    """
    Filtro a livello di sistema: blocca i domini per tutte le applicazioni
    tramite un DNS locale che risponde 0.0.0.0 / ::.

    Senza privilegi amministrativi resta attivo solo il content blocker.

    is_admin, network e server_factory sono iniettabili; state_dir sposta
    shield_state.json e dns_state.json nella directory indicata.
    """

    def __init__(
        self,
        is_admin: Callable[[], bool] | None = None,
        network=None,
        server_factory: Callable[[BlockResolver], object] | None = None,
        state_dir: Path | None = None,
    ):
        self._is_admin = is_admin or privileges.is_admin
        self.network = network or system_network
        self._server_factory = server_factory or start_dns_server
        self.state_file: Path | None = None
        self.dns_state_path: Path | None = None
        if state_dir is not None:
            self.state_file = Path(state_dir) / "shield_state.json"
            self.dns_state_path = Path(state_dir) / "dns_state.json"

        self.is_authorized = False
        self.authorization_error: str | None = None
        self.blocked_domains: list[str] = []
        self._resolver: BlockResolver | None = None
        self._server = None
        self.check_authorization_status()

    @property
    def is_active(self) -> bool:
        return self._server is not None

    # =========================
    # AUTORIZZAZIONE
    # =========================

    def check_authorization_status(self) -> bool:
        self.is_authorized = self._is_admin()
        return self.is_authorized

    def request_authorization(self) -> None:
        if not self._is_admin():
            self.is_authorized = False
            self.authorization_error = "Privilegi amministrativi necessari per modificare il DNS di sistema"
            logger.warning("[SHIELD] Autorizzazione negata")
            raise AuthorizationError(self.authorization_error)

        self.is_authorized = True
        self.authorization_error = None
        logger.info("[SHIELD] Autorizzazione concessa")

    # =========================
    # SHIELD
    # =========================

    def apply_domain_shield(self, domains: Iterable[str]) -> bool:
        if not self.is_authorized:
            logger.warning("[SHIELD] Non autorizzato a bloccare i domini")
            return False

        clean = [d for d in (normalize_domain(domain) for domain in domains) if d]
        self.blocked_domains = clean

        # Shield gia' attivo: basta aggiornare i domini
        if self._resolver is not None and self._server is not None:
            self._resolver.update_domains(clean)
            logger.info("[SHIELD] Domini aggiornati: %d", len(clean))
            return True

        self.network.refresh_dns_state(self.dns_state_path)
        upstream = upstream_servers(self.network.load_dns_state(self.dns_state_path))
        resolver = BlockResolver(clean, upstream)
        server = self._server_factory(resolver)
        try:
            self.network.set_dns_localhost()
        except Exception:
            server.stop()
            raise

        self._resolver = resolver
        self._server = server
        save_state(True, self.state_file)
        logger.info("[SHIELD] Blocco attivo su %d domini", len(clean))
        return True

    def clear_shield(self) -> None:
        if not self.is_authorized:
            return

        if self._server is not None:
            self._server.stop()
            self._server = None
            self._resolver = None

        self.network.set_dns_automatic()
        save_state(False, self.state_file)
        self.blocked_domains = []
        logger.info("[SHIELD] Restrizioni rimosse")

    # =========================
    # STARTUP RECOVERY
    # =========================

    def load_persisted_state(self) -> bool:
        return load_state(self.state_file)

    def run_startup_recovery(self, persisted_enabled: bool) -> bool:
        """
        Se lo stato salvato e' INATTIVO ma il DNS e' ancora su localhost
        (chiusura anomala), ripristina il DNS automatico.
        Ritorna True se lo shield va riattivato.
        """
        if persisted_enabled:
            return True

        try:
            dns_is_local = self.network.dns_points_to_localhost()
        except OSError as exc:
            logger.warning("[RECOVERY] Impossibile leggere DNS: %s", exc)
            return False

        if dns_is_local:
            logger.info("[RECOVERY] DNS locale rilevato con stato INATTIVO")
            try:
                self.network.set_dns_automatic()
                save_state(False, self.state_file)
                logger.info("[RECOVERY] DNS ripristinato su automatico")
            except (OSError, RuntimeError) as exc:
                logger.error("[RECOVERY] Ripristino fallito: %s", exc)
        return False
