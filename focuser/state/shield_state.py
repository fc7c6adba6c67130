import json
from pathlib import Path

from focuser.config import app_config

STATE_DIR = app_config.group_dir()
STATE_FILE = STATE_DIR / "shield_state.json"


def load_state(state_file: Path | None = None) -> bool:
    """
    True se lo shield di sistema era attivo all'ultima chiusura.
    """
    state_file = Path(state_file) if state_file else STATE_FILE
    if not state_file.exists():
        return False

    try:
        data = json.loads(state_file.read_text(encoding="utf-8"))
        return bool(data.get("enabled", False))
    except (OSError, ValueError, AttributeError):
        return False


def save_state(enabled: bool, state_file: Path | None = None):
    state_file = Path(state_file) if state_file else STATE_FILE
    state_file.parent.mkdir(parents=True, exist_ok=True)
    state_file.write_text(json.dumps({
        "enabled": enabled
    }, indent=2), encoding="utf-8")
