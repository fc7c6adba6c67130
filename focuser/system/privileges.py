import ctypes
import os


def is_admin() -> bool:
    """
    Verifica se il processo corrente ha privilegi amministrativi.
    Serve allo shield per modificare il DNS di sistema.
    """
    if hasattr(os, "geteuid"):
        return os.geteuid() == 0
    try:
        return bool(ctypes.windll.shell32.IsUserAnAdmin())
    except (AttributeError, OSError):
        return False
