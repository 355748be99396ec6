from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from typing import Optional

from pagereader.errors import SourceUnreadableError

from .model import DocumentSource

logger = logging.getLogger(__name__)


class BufferManager:
    """Session buffer under config/buffer/<timestamp> for staged documents.

    Debug mode keeps the buffer on disk; release mode removes it on cleanup().
    """

    def __init__(self, project_root: Optional[str] = None, debug: bool = False) -> None:
        self.debug = bool(debug)
        root = project_root or os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
        base = os.path.join(root, "config", "buffer")
        os.makedirs(base, exist_ok=True)
        ts = time.strftime("%Y%m%d-%H%M%S")
        self.base_dir = tempfile.mkdtemp(prefix=f"{ts}-", dir=base)

    def path(self, *parts: str) -> str:
        p = os.path.join(self.base_dir, *parts)
        os.makedirs(os.path.dirname(p), exist_ok=True)
        return p

    def stage(self, source: DocumentSource) -> str:
        """Copy the source into the buffer and return the local copy's path."""
        target = self.path(f"source{source.suffix}")
        try:
            with open(source.location, "rb") as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)
        except OSError as exc:
            raise SourceUnreadableError(f"Cannot read {source.location}: {exc}") from exc
        logger.debug("Staged %s as %s", source.location, target)
        return target

    def cleanup(self) -> None:
        if not self.debug:
            shutil.rmtree(self.base_dir, ignore_errors=True)

    def __enter__(self) -> "BufferManager":
        return self

    def __exit__(self, *exc_info) -> None:
        self.cleanup()
