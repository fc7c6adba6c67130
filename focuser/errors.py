"""
Tassonomia degli errori del nucleo blocklist.

Nessuno di questi errori e' fatale: i problemi di persistenza degradano a
stato vuoto, quelli di reload e autorizzazione vengono riportati all'utente
senza annullare lo stato gia' salvato.
"""


class FocuserError(Exception):
    pass


class DecodeError(FocuserError):
    """Dati persistiti illeggibili o con schema diverso."""


class DuplicateDomain(FocuserError):
    """Esito tipizzato di un add rifiutato (non viene sollevato)."""

    def __init__(self, domain: str):
        super().__init__(f"Dominio gia' presente: {domain}")
        self.domain = domain


class ReloadFailure(FocuserError):
    """Il motore di filtro esterno non ha potuto ricaricare le regole."""


class AuthorizationError(FocuserError):
    """Filtro di sistema non autorizzato o negato."""


class SerializationFailure(FocuserError):
    """Impossibile serializzare il documento di regole."""
