import logging
from pathlib import Path
from typing import Iterable

from focuser.config.app_config import APP_GROUP_ID, BLOCKED_SITES_KEY
from focuser.config.blocklist_store import decode_sites
from focuser.errors import DecodeError
from focuser.extension.rule_compiler import compile_document
from focuser.storage.shared_defaults import KeyValueStore

logger = logging.getLogger(__name__)


def storage_report(defaults: KeyValueStore, limit: int = 10) -> str:
    """
    Riepilogo testuale dello storage condiviso, per capire se app ed
    estensione vedono la stessa lista.
    """
    lines = []

    if not defaults.is_accessible():
        lines.append("✗ Storage condiviso NON accessibile")
        lines.append(f"Gruppo: {APP_GROUP_ID}")
        return "\n".join(lines) + "\n"

    lines.append("✓ Storage condiviso accessibile")
    lines.append(f"Gruppo: {APP_GROUP_ID}")
    lines.append("")

    data = defaults.get_data(BLOCKED_SITES_KEY)
    if data is None:
        lines.append("✗ Nessuna lista siti trovata")
        return "\n".join(lines) + "\n"

    lines.append("✓ Lista siti trovata")
    lines.append(f"Dimensione: {len(data)} bytes")

    try:
        sites = decode_sites(data)
    except DecodeError as exc:
        lines.append(f"✗ Decodifica fallita: {exc}")
        return "\n".join(lines) + "\n"

    lines.append(f"✓ Decodificati {len(sites)} siti")
    lines.append("")
    lines.append("Siti:")
    for site in sites[:limit]:
        lines.append(f"- {site.domain}")
    if len(sites) > limit:
        lines.append(f"... e altri {len(sites) - limit}")
    return "\n".join(lines) + "\n"


def verify_rule_document(domains: Iterable[str], path: Path) -> bool:
    """
    Ricompila i domini e confronta byte per byte con il documento scritto.
    Una differenza viene solo loggata.
    """
    expected = compile_document(domains)
    try:
        written = Path(path).read_bytes()
    except OSError as exc:
        logger.warning("Documento regole non leggibile (%s): %s", path, exc)
        return False

    if written != expected:
        logger.warning("Documento regole diverso dalla lista attuale: %s", path)
        return False
    return True
