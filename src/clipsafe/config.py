import os
from pathlib import Path

DATA_DIR = Path(os.environ.get("CLIPSAFE_DATA_DIR", Path.home() / ".local" / "share" / "clipsafe"))
DB_PATH = DATA_DIR / "clipsafe.db"
LOG_PATH = DATA_DIR / "clipsafe.log"

NONCE_LEN = 12  # AES-GCM nonce, bytes
TAG_LEN = 16  # AES-GCM authentication tag, bytes


def _parse_float_env(name: str, default: float, minimum: float, maximum: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return max(minimum, min(maximum, value))


RESUME_SYNC_DELAY = _parse_float_env("CLIPSAFE_RESUME_SYNC_DELAY", 5.0, 0.0, 60.0)  # seconds before sync restarts
KEY_LOCK_TIMEOUT = _parse_float_env("CLIPSAFE_KEY_LOCK_TIMEOUT", 5.0, 0.1, 60.0)  # seconds to wait for the key guard

# Progress labels are translation keys resolved by the UI
DOWNLOAD_PROGRESS_LABEL = "SETTINGS.ENCRYPT.DOWNLOADING_REMOTE_CLIPBOARDS"
DECRYPTION_PROGRESS_LABEL = "SETTINGS.ENCRYPT.DECRYPTION_PROGRESS"
ENCRYPTION_PROGRESS_LABEL = "SETTINGS.ENCRYPT.ENCRYPTION_PROGRESS"
