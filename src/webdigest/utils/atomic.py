"""
Atomic file writing for extracted documents.

Content is written to a hidden sibling file, synced, then moved over the
target with ``os.replace``, so a reader sees either the old document or the
new one.
"""

import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator

import structlog

logger = structlog.get_logger(__name__)


@contextmanager
def _sibling_temp(target: Path, encoding: str) -> Iterator[IO[str]]:
    """Yield a text handle on a temp file next to ``target``; remove it if the block fails."""
    fd, name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".part")
    temp_path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as handle:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, target)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def atomic_write_text(target_path: Path, content: str, encoding: str = "utf-8") -> None:
    """
    Atomically replace ``target_path`` with ``content``.

    Raises:
        OSError: the directory cannot be created or the write/rename failed
    """
    target = Path(target_path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with _sibling_temp(target, encoding) as handle:
            handle.write(content)
    except OSError as e:
        logger.warning("Atomic write failed", target=str(target), error=str(e))
        raise OSError(f"Failed to atomically write {target}: {e}") from e

    logger.debug("Atomic write completed", target=str(target), chars=len(content))
