import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable

from focuser.config.app_config import BLOCKED_SITES_KEY
from focuser.config.default_blocklist import DEFAULT_DOMAINS
from focuser.errors import DecodeError, DuplicateDomain
from focuser.storage.shared_defaults import KeyValueStore, decode_date, encode_date

logger = logging.getLogger(__name__)

_SCHEME_PREFIXES = ("https://", "http://")
_WWW_PREFIX = "www."


# =========================
# MODELLO
# =========================

@dataclass(frozen=True)
class BlockedSite:
    domain: str
    is_default: bool = False
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    date_added: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": str(self.id).upper(),
            "domain": self.domain,
            "isDefault": self.is_default,
            "dateAdded": encode_date(self.date_added),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BlockedSite":
        if not isinstance(data, dict):
            raise DecodeError(f"Record non valido: {data!r}")
        try:
            site_id = uuid.UUID(data["id"])
            domain = data["domain"]
            is_default = data["isDefault"]
            date_added = decode_date(data["dateAdded"])
        except (KeyError, TypeError, ValueError, AttributeError, OverflowError) as exc:
            raise DecodeError(f"Record non valido: {exc}") from exc

        if not isinstance(domain, str) or not domain:
            raise DecodeError("Dominio vuoto o non testuale")
        if not isinstance(is_default, bool):
            raise DecodeError("isDefault non booleano")

        return cls(domain=domain, is_default=is_default, id=site_id, date_added=date_added)


@dataclass
class LoadResult:
    sites: list[BlockedSite]
    error: DecodeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class AddResult:
    sites: list[BlockedSite]
    added: bool
    site: BlockedSite | None = None
    rejection: DuplicateDomain | None = None
    reason: str | None = None


# =========================
# UTILS
# =========================

def normalize_domain(raw: str) -> str:
    """
    Minuscolo, senza schema, senza "www." iniziale e senza "/" finali.
    Ripete finche' la stringa non cambia piu', quindi e' idempotente.
    """
    domain = raw.lower()
    previous = None
    while domain != previous:
        previous = domain
        domain = domain.strip()
        for prefix in _SCHEME_PREFIXES:
            if domain.startswith(prefix):
                domain = domain[len(prefix):]
        if domain.startswith(_WWW_PREFIX):
            domain = domain[len(_WWW_PREFIX):]
        domain = domain.rstrip("/")
    return domain


def encode_sites(sites: Iterable[BlockedSite]) -> bytes:
    return json.dumps([site.to_dict() for site in sites]).encode("utf-8")


def decode_sites(data: bytes) -> list[BlockedSite]:
    try:
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise DecodeError(f"JSON non valido: {exc}") from exc
    if not isinstance(payload, list):
        raise DecodeError("Attesa una lista di siti")
    return [BlockedSite.from_dict(item) for item in payload]


# =========================
# LETTURA (app + estensione)
# =========================

class BlocklistReader:
    """
    Percorso di sola lettura della lista canonica.
    E' l'unica vista concessa all'estensione: non scrive mai la chiave.
    """

    def __init__(self, defaults: KeyValueStore):
        self.defaults = defaults

    def load_result(self) -> LoadResult:
        data = self.defaults.get_data(BLOCKED_SITES_KEY)
        if data is None:
            return LoadResult([])
        try:
            return LoadResult(decode_sites(data))
        except DecodeError as exc:
            logger.warning("Lista siti illeggibile, uso lista vuota: %s", exc)
            return LoadResult([], exc)

    def load(self) -> list[BlockedSite]:
        return self.load_result().sites


# =========================
# SCRITTURA (solo app)
# =========================

class BlocklistStore(BlocklistReader):
    def __init__(
        self,
        defaults: KeyValueStore,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
    ):
        super().__init__(defaults)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._id_factory = id_factory
        self.sites: list[BlockedSite] = self.load()

    def domains(self) -> list[str]:
        return [site.domain for site in self.sites]

    def seed_defaults(self, catalog: Iterable[str] = DEFAULT_DOMAINS) -> list[BlockedSite]:
        if self.sites:
            return list(self.sites)

        now = self._clock()
        self.sites = [
            BlockedSite(domain=domain, is_default=True, id=self._id_factory(), date_added=now)
            for domain in catalog
        ]
        self.persist(self.sites)
        logger.info("Lista inizializzata con %d domini predefiniti", len(self.sites))
        return list(self.sites)

    def add(self, raw_input: str) -> AddResult:
        domain = normalize_domain(raw_input)

        if not domain:
            return AddResult(list(self.sites), False, reason="empty")

        if domain in self.domains():
            return AddResult(
                list(self.sites),
                False,
                rejection=DuplicateDomain(domain),
                reason="duplicate",
            )

        site = BlockedSite(
            domain=domain,
            is_default=False,
            id=self._id_factory(),
            date_added=self._clock(),
        )
        self.sites.append(site)
        self.persist(self.sites)
        logger.info("Dominio aggiunto: %s", domain)
        return AddResult(list(self.sites), True, site=site)

    def remove(self, site_id: uuid.UUID) -> list[BlockedSite]:
        return self.remove_many([site_id])

    def remove_many(self, site_ids: Iterable[uuid.UUID]) -> list[BlockedSite]:
        ids = set(site_ids)
        self.sites = [site for site in self.sites if site.id not in ids]
        self.persist(self.sites)
        return list(self.sites)

    def persist(self, sites: list[BlockedSite]) -> None:
        """
        Riscrive l'intera lista sotto la chiave condivisa.
        Gli errori vengono loggati e non propagati.
        """
        self.sites = list(sites)
        try:
            self.defaults.set_data(BLOCKED_SITES_KEY, encode_sites(self.sites))
        except (TypeError, ValueError, OSError) as exc:
            logger.error("Salvataggio lista siti fallito: %s", exc)
