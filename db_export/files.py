"""Output file writing."""

import logging
from pathlib import Path
from typing import List, Union

from .errors import WriteError

logger = logging.getLogger(__name__)


class FileWriter:
    """Writes generated sources under a base directory and records what was written."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding
        self.written: List[Path] = []

    def write(self, path: Union[str, Path], content: str) -> Path:
        """Write content to path, creating parent directories.

        Raises:
            WriteError: If the file cannot be written
        """
        target = Path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding=self.encoding)
        except OSError as e:
            raise WriteError(f"Failed to write {target}: {e}", path=str(target)) from e

        logger.debug("Wrote %s (%d bytes)", target, len(content))
        self.written.append(target)
        return target
