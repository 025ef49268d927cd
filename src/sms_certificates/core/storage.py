"""
File Storage Helpers

Durable byte sink used for generated certificate documents.
"""

import os
import tempfile


def ensure_dir(path: str) -> None:
    """Create a directory (and parents) if it does not exist."""
    os.makedirs(path, exist_ok=True)


def write_atomic(file_path: str, data: bytes) -> None:
    """Write bytes to a temp file in the target directory, then rename into place."""
    dir_path = os.path.dirname(file_path) or "."
    ensure_dir(dir_path)
    fd, tmp_path = tempfile.mkstemp(dir=dir_path)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_path, file_path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


class FileStorage:
    """Local filesystem storage."""

    def ensure_directory(self, path: str) -> None:
        ensure_dir(path)

    def write_file(self, path: str, data: bytes) -> None:
        write_atomic(path, data)

    def remove_file(self, path: str) -> bool:
        """Remove a file, returning False when it was not there."""
        try:
            os.remove(path)
        except FileNotFoundError:
            return False
        return True
