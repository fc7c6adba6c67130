"""
Compilazione della lista domini nel documento di regole del content blocker.

Ogni dominio produce una regola con url-filter ".*dominio.*": il match e'
volutamente non ancorato, quindi blocca anche host che contengono il dominio
come sottostringa.
"""
import json
import logging
from pathlib import Path
from typing import Iterable

from focuser.errors import SerializationFailure

logger = logging.getLogger(__name__)

BUNDLED_DOCUMENT = Path(__file__).resolve().parent / "blockerList.json"

RESOURCE_TYPES = [
    "document",
    "image",
    "style-sheet",
    "script",
    "media",
    "font",
    "raw",
    "svg-document",
    "popup",
]


def escape_domain(domain: str) -> str:
    # Solo il punto viene escapato
    return domain.replace(".", "\\.")


def compile_rule(domain: str) -> dict:
    return {
        "trigger": {
            "url-filter": f".*{escape_domain(domain)}.*",
            "resource-type": list(RESOURCE_TYPES),
        },
        "action": {
            "type": "block",
        },
    }


def compile_rules(domains: Iterable[str]) -> list[dict]:
    return [compile_rule(domain) for domain in domains]


def serialize_rules(rules: list[dict]) -> bytes:
    """Stesso input, stessi byte."""
    try:
        return json.dumps(rules, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise SerializationFailure(str(exc)) from exc


def load_bundled_document() -> bytes:
    return BUNDLED_DOCUMENT.read_bytes()


def compile_document(domains: Iterable[str]) -> bytes:
    try:
        return serialize_rules(compile_rules(domains))
    except SerializationFailure as exc:
        logger.error("Serializzazione regole fallita, uso documento incluso: %s", exc)
        return load_bundled_document()
