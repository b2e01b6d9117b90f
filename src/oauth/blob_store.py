"""
File-backed key/value blob storage.

Stores are passive persistence collaborators: each key is a path
relative to the store root and each value is the full text of one JSON
document. Writes go to a temp file in the same directory and are renamed
into place, so readers never observe a half-written document.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from .exceptions import CredentialStorageError

logger = logging.getLogger(__name__)


class FileBlobStore:
    """
    Directory of text blobs addressed by relative key.

    Files are written with user-only permissions (600).
    """

    def __init__(self, root: str):
        """
        Initialize blob storage.

        Args:
            root: Directory that keys are resolved against
        """
        self.root = Path(os.path.expanduser(root))

    def path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise CredentialStorageError(f"Key escapes store root: {key}")
        return path

    def read(self, key: str) -> Optional[str]:
        """
        Read a blob.

        Returns:
            Blob text, or None if missing, unreadable or not UTF-8 text
        """
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            logger.warning(f"Ignoring {path}, not valid UTF-8: {e}")
            return None
        except (IOError, OSError) as e:
            logger.warning(f"Could not read {path}: {e}")
            return None

    def write(self, key: str, content: str) -> None:
        """
        Replace a blob atomically.

        Raises:
            CredentialStorageError: If the write fails
        """
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                os.chmod(tmp_name, 0o600)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
            logger.debug(f"Wrote {path}")
        except (IOError, OSError) as e:
            logger.error(f"Failed to write {path}: {e}")
            raise CredentialStorageError(f"Failed to write {path}: {e}") from e

    def delete(self, key: str) -> bool:
        """
        Delete a blob.

        Returns:
            True if the blob was deleted, False if it didn't exist

        Raises:
            CredentialStorageError: If the file exists but cannot be removed
        """
        path = self.path_for(key)
        try:
            path.unlink()
            logger.debug(f"Deleted {path}")
            return True
        except FileNotFoundError:
            return False
        except (OSError, PermissionError) as e:
            logger.error(f"Failed to delete {path}: {e}")
            raise CredentialStorageError(f"Failed to delete {path}: {e}") from e
