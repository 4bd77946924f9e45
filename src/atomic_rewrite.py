import os
import logging
from pathlib import Path
from typing import BinaryIO, Optional, Union

TEMP_SUFFIX = ".tmp"


# --- Errors ---
class DedupeError(Exception):
    """Base class for a failed dedup pass. The source file is left untouched."""

    def __init__(self, message: str, path: Union[str, Path, None] = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class OpenError(DedupeError):
    """The source could not be opened, or the temp file could not be created."""


class WriteError(DedupeError):
    """Reading the source or writing the temp file failed mid-pass."""


class CommitError(DedupeError):
    """The temp file could not be renamed over the target."""


def temp_path_for(path: Union[str, Path]) -> Path:
    """
    Sibling path used to build the new content: the target's extension is
    replaced by TEMP_SUFFIX ("data.txt" -> "data.tmp"). Staying in the same
    directory keeps the final rename on one filesystem.

    A target that already ends in TEMP_SUFFIX gets the suffix appended instead,
    otherwise the temp file would be the target itself.
    """
    path = Path(path)
    tmp = path.with_suffix(TEMP_SUFFIX)
    if tmp == path:
        tmp = path.with_name(path.name + TEMP_SUFFIX)
    return tmp


class AtomicRewrite:
    """
    Scoped temp-file transaction for replacing `target`.

    Entering opens (and truncates) the temp file; `commit()` flushes, fsyncs,
    closes and renames it over the target. Leaving the block without a
    successful commit closes the temp file and, depending on
    `cleanup_on_failure`, either deletes it or leaves it on disk for inspection.

        with AtomicRewrite(path) as rewrite:
            rewrite.file.write(data)
            rewrite.commit()
    """

    def __init__(self, target: Union[str, Path], cleanup_on_failure: bool = False):
        self.target = Path(target)
        self.temp_path = temp_path_for(self.target)
        self.cleanup_on_failure = cleanup_on_failure
        self.file: Optional[BinaryIO] = None
        self.committed = False

    def __enter__(self) -> "AtomicRewrite":
        logging.debug(f"Writing deduplicated content of {self.target} to {self.temp_path}")
        try:
            self.file = open(self.temp_path, 'wb')
        except OSError as e:
            raise OpenError(f"Cannot create temporary file {self.temp_path}: {e}", self.temp_path) from e
        return self

    def commit(self):
        """Make the temp file durable and atomically replace the target with it."""
        try:
            self.file.flush()
            os.fsync(self.file.fileno())
            self.file.close()
        except OSError as e:
            raise WriteError(f"Cannot finalize temporary file {self.temp_path}: {e}", self.temp_path) from e

        try:
            os.replace(self.temp_path, self.target)
        except OSError as e:
            raise CommitError(f"Cannot rename {self.temp_path} over {self.target}: {e}", self.target) from e
        self.committed = True

    def __exit__(self, exc_type, exc, tb):
        if self.committed:
            return False
        if self.file is not None and not self.file.closed:
            try:
                self.file.close()
            except OSError as e:
                logging.warning(f"Error closing temporary file {self.temp_path}: {e}")

        if self.cleanup_on_failure:
            try:
                self.temp_path.unlink()
                logging.debug(f"Removed temporary file {self.temp_path}")
            except FileNotFoundError:
                pass
            except OSError as e:
                logging.warning(f"Could not remove temporary file {self.temp_path}: {e}")
        elif self.temp_path.exists():
            logging.warning(f"Temporary file left on disk: {self.temp_path}")
        return False
