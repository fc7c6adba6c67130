# Catalogo usato per il seed al primo avvio
DEFAULT_DOMAINS = [
    "pornhub.com",
    "xvideos.com",
    "xnxx.com",
    "redtube.com",
    "youporn.com",
    "tube8.com",
    "spankbang.com",
    "xhamster.com",
    "txxx.com",
    "beeg.com",
    "eporner.com",
    "motherless.com",
    "hqporner.com",
    "4porn.com",
    "porn.com",
    "tnaflix.com",
    "porntrex.com",
    "cam4.com",
    "chaturbate.com",
    "stripchat.com",
]

# L'estensione lo usa quando lo storage condiviso e' vuoto
EXTENSION_FALLBACK_DOMAINS = DEFAULT_DOMAINS + [
    "pornhd.com",
    "xmoviesforyou.com",
    "drtuber.com",
    "keezmovies.com",
    "extremetube.com",
]
