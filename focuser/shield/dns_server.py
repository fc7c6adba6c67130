import logging
import socket
import threading
from pathlib import Path
from typing import Iterable

from dnslib import DNSRecord, QTYPE, RR, A, AAAA
from dnslib.server import DNSServer, BaseResolver

from focuser.config import app_config
from focuser.system.network import load_dns_state

logger = logging.getLogger(__name__)


# =========================
# CONFIGURAZIONE
# =========================

LOCAL_SUFFIXES = [
    "home",
    "lan",
    "local",
]


# =========================
# UTILS DOMINI BLOCCATI
# =========================

def normalize_qname(qname: str) -> str:
    domain = qname.rstrip(".").lower()
    for suffix in LOCAL_SUFFIXES:
        if domain.endswith("." + suffix):
            domain = domain[: -(len(suffix) + 1)]
            break
    return domain


def is_blocked(domain: str, blocked_domains: Iterable[str]) -> bool:
    for blocked in blocked_domains:
        if domain == blocked or domain.endswith("." + blocked):
            return True
    return False


def upstream_servers(state: dict | None) -> list[tuple[str, int]]:
    """
    DNS upstream salvati prima di puntare il sistema su localhost.
    """
    dns_v4 = state.get("dns") if state else None
    servers = [ip for ip in (dns_v4 or []) if ip != app_config.DNS_HOST]
    if not servers:
        servers = [app_config.FALLBACK_UPSTREAM_DNS]
    return [(ip, 53) for ip in servers]


def upstream_from_state(state_path: Path | None = None) -> list[tuple[str, int]]:
    return upstream_servers(load_dns_state(state_path))


# =========================
# DNS RESOLVER
# =========================

class BlockResolver(BaseResolver):
    def __init__(self, blocked_domains: Iterable[str] = (), upstream_dns_list=None):
        self._lock = threading.Lock()
        self._blocked: frozenset[str] = frozenset()
        self.update_domains(blocked_domains)
        if upstream_dns_list is None:
            upstream_dns_list = upstream_from_state()
        self.upstream_dns_list = list(upstream_dns_list)

    @property
    def blocked_domains(self) -> frozenset[str]:
        with self._lock:
            return self._blocked

    def update_domains(self, domains: Iterable[str]) -> None:
        blocked = frozenset(d.lower().rstrip(".") for d in domains if d)
        with self._lock:
            self._blocked = blocked

    def resolve(self, request: DNSRecord, handler):
        qtype = QTYPE[request.q.qtype]
        domain = normalize_qname(str(request.q.qname))

        reply = request.reply()

        # BLOCCO DOMINIO
        if is_blocked(domain, self.blocked_domains):
            logger.info("[BLOCCATO] %s", domain)
            if qtype == "A":
                reply.add_answer(
                    RR(rname=request.q.qname, rtype=QTYPE.A, rclass=1,
                       ttl=app_config.BLOCK_TTL, rdata=A(app_config.BLOCK_IPV4))
                )
            elif qtype == "AAAA":
                reply.add_answer(
                    RR(rname=request.q.qname, rtype=QTYPE.AAAA, rclass=1,
                       ttl=app_config.BLOCK_TTL, rdata=AAAA(app_config.BLOCK_IPV6))
                )
            return reply

        return self.forward_request(request)

    def forward_request(self, request: DNSRecord) -> DNSRecord:
        for upstream in self.upstream_dns_list:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            sock.settimeout(app_config.DNS_TIMEOUT)
            try:
                sock.sendto(request.pack(), upstream)
                data, _ = sock.recvfrom(4096)
                return DNSRecord.parse(data)
            except socket.timeout:
                logger.warning("[TIMEOUT] DNS upstream %s non risponde", upstream[0])
            finally:
                sock.close()
        # risposta vuota
        return request.reply()


def start_dns_server(resolver: BlockResolver, address=None, port=None) -> DNSServer:
    address = address or app_config.DNS_HOST
    port = port or app_config.DNS_PORT
    server = DNSServer(resolver, port=port, address=address, tcp=False)
    server.start_thread()
    logger.info("[DNS] Shield attivo su %s:%s", address, port)
    return server
