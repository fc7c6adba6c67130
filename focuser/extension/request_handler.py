import logging
from pathlib import Path

from focuser.config.blocklist_store import BlocklistReader
from focuser.config.default_blocklist import EXTENSION_FALLBACK_DOMAINS
from focuser.errors import SerializationFailure
from focuser.extension.rule_compiler import (
    BUNDLED_DOCUMENT,
    compile_rules,
    serialize_rules,
)
from focuser.storage.shared_defaults import atomic_write

logger = logging.getLogger(__name__)

OUTPUT_NAME = "blockerList.json"


class ContentBlockerRequestHandler:
    """
    Lato estensione: rilegge la lista condivisa e produce il documento di regole.
    Deve sempre restituire un documento leggibile, altrimenti il motore di
    filtro fallisce.
    """

    def __init__(self, reader: BlocklistReader, output_dir: Path):
        self.reader = reader
        self.output_dir = Path(output_dir)

    def blocked_domains(self) -> list[str]:
        domains = [site.domain for site in self.reader.load()]
        if not domains:
            logger.info("Nessun sito condiviso, uso la lista predefinita dell'estensione")
            domains = list(EXTENSION_FALLBACK_DOMAINS)
        return domains

    def begin_request(self) -> Path:
        domains = self.blocked_domains()
        try:
            data = serialize_rules(compile_rules(domains))
            return self._write_document(data)
        except (SerializationFailure, OSError) as exc:
            logger.error("Documento regole non generato, uso quello incluso: %s", exc)
            return BUNDLED_DOCUMENT

    def _write_document(self, data: bytes) -> Path:
        path = self.output_dir / OUTPUT_NAME
        atomic_write(path, data)
        return path
