import argparse
import asyncio
import getpass
import logging
import sys

from clipsafe import __version__
from clipsafe.bulk import BulkReencryptOrchestrator
from clipsafe.config import DB_PATH, LOG_PATH
from clipsafe.errors import CommandError
from clipsafe.events import PROGRESS_EVENT, EventBus
from clipsafe.keystore import KeyStore
from clipsafe.rotation import enable_encryption, remove_encryption, unlock
from clipsafe.storage import StorageManager
from clipsafe.utils import ensure_dirs, format_progress

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    ensure_dirs()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(LOG_PATH),
            logging.StreamHandler(sys.stderr),
        ],
    )


def print_progress(event: str, payload: dict) -> None:
    if event != PROGRESS_EVENT:
        return
    end = "\n" if payload["current"] == payload["total"] else ""
    print("\r" + format_progress(payload["label"], payload["current"], payload["total"]), end=end, flush=True)


def build_orchestrator(storage: StorageManager) -> BulkReencryptOrchestrator:
    # The command line works on the local database only; no sync provider.
    events = EventBus()
    events.subscribe(print_progress)
    return BulkReencryptOrchestrator(KeyStore(), storage, events)


def check_status(storage: StorageManager) -> int:
    """Print the encryption setting and how many clipboards are encrypted."""
    settings = storage.get_global_settings()
    print(f"Database: {DB_PATH}")
    print(f"Encryption: {'enabled' if settings.encryption else 'disabled'}")
    print(f"Sync: {'enabled' if settings.sync else 'disabled'}")
    print(f"Clipboards: {storage.count()} ({storage.count_encrypted()} encrypted)")
    return 0


def encrypt_history(storage: StorageManager) -> int:
    """Encrypt every stored clipboard with a new password."""
    password = getpass.getpass("New password: ")
    if not password:
        print("Password must not be empty.")
        return 1
    if getpass.getpass("Repeat password: ") != password:
        print("Passwords do not match.")
        return 1

    orchestrator = build_orchestrator(storage)
    try:
        result = asyncio.run(enable_encryption(password, orchestrator))
    except CommandError as e:
        print(f"Failed to enable encryption: {e.reason}")
        return 1

    print(f"Encrypted {len(result.transformed)} clipboards.")
    if result.failed:
        print(f"{len(result.failed)} clipboards could not be encrypted and were left as is.")
    return 0


def decrypt_history(storage: StorageManager) -> int:
    """Decrypt every stored clipboard and turn encryption off."""
    password = getpass.getpass("Password: ")
    orchestrator = build_orchestrator(storage)
    try:
        unlock(password, orchestrator)
        result = asyncio.run(remove_encryption(password, orchestrator))
    except CommandError as e:
        print(f"Failed to remove encryption: {e.reason}")
        return 1

    print(f"Decrypted {len(result.transformed)} clipboards.")
    if result.deleted:
        print(f"Removed {len(result.deleted)} clipboards that could not be decrypted.")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description=f"Clipsafe {__version__} - encrypted clipboard history",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  status     Show encryption state of the clipboard history
  encrypt    Encrypt the whole history with a password
  decrypt    Decrypt the whole history and disable encryption

Examples:
  clipsafe status
  clipsafe encrypt
""",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="status",
        choices=["status", "encrypt", "decrypt"],
        help="Command to run",
    )

    args = parser.parse_args()
    setup_logging()

    commands = {
        "status": check_status,
        "encrypt": encrypt_history,
        "decrypt": decrypt_history,
    }
    with StorageManager(DB_PATH) as storage:
        code = commands[args.command](storage)
    sys.exit(code)


if __name__ == "__main__":
    main()
