"""
File Operations Module
Thin filesystem layer used by zones and the zone manager for their state files
"""
import os
import stat
import logging
import tempfile
from typing import List, Tuple, TextIO

# Setup logger for this module
logger = logging.getLogger(__name__)

# File types reported by FileOps.status
NOT_FOUND = "not_found"
REGULAR = "regular"
DIRECTORY = "directory"
OTHER = "other"


class AtomicWriter:
    """
    Text writer that replaces its target only when closed without error.

    Content goes to a temporary file in the target's directory, which is
    renamed over the target on a clean exit and removed otherwise, so the
    previous file survives a failed write intact.
    """

    def __init__(self, path: str):
        self.path = path
        directory = os.path.dirname(path) or "."
        fd, self.temp_path = tempfile.mkstemp(
            dir=directory, prefix=f".{os.path.basename(path)}.", suffix=".tmp"
        )
        self._file = os.fdopen(fd, "w", encoding="utf-8")

    def write(self, text: str) -> int:
        return self._file.write(text)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        try:
            self._file.close()
        except OSError:
            self._discard()
            if exc_type is None:
                raise
            return False

        if exc_type is not None:
            self._discard()
            return False

        try:
            os.replace(self.temp_path, self.path)
        except OSError:
            self._discard()
            raise
        return False

    def _discard(self):
        try:
            os.unlink(self.temp_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove temporary file {self.temp_path}: {e}")


class FileOps:
    """
    Filesystem primitives behind zone persistence.

    Every method lets OSError propagate so callers can turn it into their
    own error kind. Tests swap in a subclass (or a Mock) to inject failures.
    """

    def status(self, path: str) -> str:
        """Return the file type at path, NOT_FOUND if nothing is there"""
        try:
            mode = os.stat(path).st_mode
        except FileNotFoundError:
            return NOT_FOUND

        if stat.S_ISREG(mode):
            return REGULAR
        if stat.S_ISDIR(mode):
            return DIRECTORY
        return OTHER

    def open_read(self, path: str) -> TextIO:
        return open(path, "r", encoding="utf-8")

    def open_write(self, path: str) -> AtomicWriter:
        """Open path for a whole-file rewrite; the old content stays until the writer closes cleanly"""
        return AtomicWriter(path)

    def list_dir(self, path: str) -> List[Tuple[str, bool]]:
        """
        List a directory

        Returns:
            List of (entry path, is regular file) tuples
        """
        with os.scandir(path) as entries:
            return [(entry.path, entry.is_file()) for entry in entries]

    def create_directory(self, path: str) -> None:
        os.makedirs(path, exist_ok=True)
        logger.debug(f"Created directory {path}")
