import os
from pathlib import Path


# =========================
# IDENTIFICATIVI
# =========================

APP_GROUP_ID = "group.com.focuser.app"
EXTENSION_IDENTIFIER = "com.focuser.app.ContentBlocker"

# =========================
# CHIAVI STORAGE CONDIVISO
# =========================

BLOCKED_SITES_KEY = "blocked_sites"
USER_SETTINGS_KEY = "user_settings"
USER_STATISTICS_KEY = "user_statistics"

# =========================
# DNS SHIELD
# =========================

DNS_HOST = "127.0.0.1"
DNS_PORT = 53
DNS_TIMEOUT = 3
FALLBACK_UPSTREAM_DNS = "8.8.8.8"

# "::" e' l'indirizzo IPv6 non specificato, le connessioni falliscono
BLOCK_IPV4 = "0.0.0.0"
BLOCK_IPV6 = "::"
BLOCK_TTL = 60


def group_dir() -> Path:
    """
    Directory dello storage condiviso tra app ed estensione.
    FOCUSER_GROUP_DIR ha precedenza sul default in home.
    """
    override = os.environ.get("FOCUSER_GROUP_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".focuser" / APP_GROUP_ID


def rules_dir() -> Path:
    return group_dir() / "ContentBlocker"


def log_path() -> Path:
    return group_dir() / "logs" / "focuser.log"
