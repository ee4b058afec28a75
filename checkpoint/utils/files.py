"""Whole-file writes for service artifacts."""

from pathlib import Path


def write_atomic(path: Path, content: str | bytes) -> None:
    """Replace a file's contents in one step.

    Args:
        path: Path to write to. Parent directories are created.
        content: Text (written as UTF-8) or bytes.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    # Atomic write: write to temp file then rename
    temp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        if isinstance(content, bytes):
            temp_path.write_bytes(content)
        else:
            temp_path.write_text(content, encoding="utf-8")
        temp_path.replace(path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
