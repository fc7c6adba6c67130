import logging
import threading
from pathlib import Path

from focuser.app.controller import AppController
from focuser.config import app_config
from focuser.config.blocklist_store import BlocklistReader, BlocklistStore
from focuser.diagnostics import storage_report, verify_rule_document
from focuser.extension.host import ExtensionHost
from focuser.extension.request_handler import ContentBlockerRequestHandler
from focuser.logging_setup import configure_logging
from focuser.shield.shield_manager import ShieldManager
from focuser.state.settings_store import SettingsManager
from focuser.state.statistics_store import StatisticsManager
from focuser.storage.shared_defaults import SharedDefaults
from focuser.sync.sync_trigger import SyncTrigger

logger = logging.getLogger("focuser.main")


def build_app(log_callback, group_directory: Path | None = None) -> AppController:
    group_directory = Path(group_directory or app_config.group_dir())

    # L'app e' l'unica a scrivere la lista canonica
    store = BlocklistStore(SharedDefaults(group_directory))
    store.seed_defaults()

    # L'estensione ha la propria vista, di sola lettura
    handler = ContentBlockerRequestHandler(
        BlocklistReader(SharedDefaults(group_directory)),
        group_directory / "ContentBlocker",
    )
    host = ExtensionHost()
    host.register(app_config.EXTENSION_IDENTIFIER, handler)

    # Ogni documento prodotto viene riletto e confrontato con la lista vista dall'estensione
    host.add_listener(lambda identifier, path: verify_rule_document(handler.blocked_domains(), path))

    return AppController(
        log_callback,
        store,
        SyncTrigger(host, app_config.EXTENSION_IDENTIFIER),
        ShieldManager(state_dir=group_directory),
        StatisticsManager(SharedDefaults(group_directory)),
    )


def main():
    configure_logging(app_config.log_path())

    controller = build_app(logger.info)
    defaults = controller.store.defaults
    logger.info("[INIT]\n%s", storage_report(defaults))

    settings = SettingsManager(defaults)
    if settings.settings.has_completed_onboarding:
        logger.info("[INIT] Recupero stimato: %d giorni", settings.estimated_recovery_days())
    controller.statistics.refresh_streak()

    # =========================
    # Prima compilazione regole
    # =========================
    result = controller.sync_trigger.reload_sync()
    if not result.success:
        logger.warning("[INIT] Reload iniziale fallito: %s", result.error_message)

    # =========================
    # Ripristino shield + recovery
    # =========================
    persisted_enabled = controller.shield.load_persisted_state()
    if controller.shield.run_startup_recovery(persisted_enabled):
        logger.info("[AUTO] Ripristino shield ATTIVO")
        controller.enable_shield()

    if not controller.is_running:
        return

    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        logger.info("[APP] Arresto richiesto")
    finally:
        controller.disable_shield()


if __name__ == "__main__":
    main()
