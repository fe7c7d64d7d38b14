from clipsafe.config import DATA_DIR


def ensure_dirs() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)


def format_progress(label: str, current: int, total: int) -> str:
    # Labels are translation keys; show only the last segment on the console.
    name = label.rsplit(".", 1)[-1].replace("_", " ").capitalize()
    return f"{name}: {current}/{total}"
