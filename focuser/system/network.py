import json
import logging
import subprocess
from pathlib import Path

from focuser.config import app_config

logger = logging.getLogger(__name__)


# =========================
# PATH
# =========================

STATE_PATH = app_config.group_dir() / "dns_state.json"


# =========================
# UTILS
# =========================

def _run(cmd: list[str]) -> str:
    """
    Esegue un comando PowerShell / netsh e restituisce stdout.
    """
    result = subprocess.run(cmd, capture_output=True, text=True)
    return result.stdout.strip()


# =========================
# LETTURA DNS CORRENTE
# =========================

def get_active_interface() -> str | None:
    output = _run([
        "powershell",
        "-Command",
        "(Get-NetAdapter | Where-Object {$_.Status -eq 'Up'} | Select-Object -First 1 -ExpandProperty Name)"
    ])
    return output if output else None


def get_current_dns() -> list[str]:
    """
    DNS IPv4 configurati sull'interfaccia attiva
    """
    iface = get_active_interface()
    if not iface:
        return []

    output = _run([
        "powershell",
        "-Command",
        f"(Get-DnsClientServerAddress -InterfaceAlias '{iface}' -AddressFamily IPv4).ServerAddresses"
    ])
    return [line.strip() for line in output.splitlines() if line.strip()]


def dns_points_to_localhost() -> bool:
    return app_config.DNS_HOST in get_current_dns()


# =========================
# STATO DNS (FILE)
# =========================

def refresh_dns_state(state_path: Path | None = None) -> None:
    """
    Salva il DNS attuale per usarlo come upstream dello shield.
    Non modifica il sistema.
    """
    iface = get_active_interface()
    dns = get_current_dns()

    # Con lo shield attivo il DNS di sistema e' localhost: non sovrascrivere
    if app_config.DNS_HOST in dns:
        logger.info("[DNS] DNS locale gia' attivo, stato precedente mantenuto")
        return

    state = {
        "interface": iface,
        "dns": dns,
    }

    state_path = Path(state_path) if state_path else STATE_PATH
    state_path.parent.mkdir(parents=True, exist_ok=True)
    with open(state_path, "w", encoding="utf-8") as f:
        json.dump(state, f, indent=2)

    logger.info("[DNS] Stato aggiornato: %s", state)


def load_dns_state(state_path: Path | None = None) -> dict | None:
    state_path = Path(state_path) if state_path else STATE_PATH
    if not state_path.exists():
        return None

    try:
        with open(state_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("[DNS] Stato DNS illeggibile: %s", exc)
        return None


# =========================
# MODIFICA DNS SISTEMA
# =========================

def _set_dns(*mode: str) -> None:
    iface = get_active_interface()
    if not iface:
        raise RuntimeError("Interfaccia di rete non trovata")

    _run(["netsh", "interface", "ip", "set", "dns", f"name={iface}", *mode])


def set_dns_localhost() -> None:
    _set_dns("static", app_config.DNS_HOST)
    logger.info("[DNS] DNS impostato su %s", app_config.DNS_HOST)


def set_dns_automatic() -> None:
    """
    Ripristina DNS automatico (DHCP)
    """
    _set_dns("dhcp")
    logger.info("[DNS] DNS ripristinato su automatico (DHCP)")
