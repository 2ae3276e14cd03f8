"""Writing generated files into an output directory."""

from __future__ import annotations

import os
import shutil

DEFAULT_TMP_FOLDER = "generated"
OBJECT_SEPARATOR = b"---\n"
PERSISTENT_PERMISSIONS = 0o777


class FileWriter:
    """Writes files into a directory, creating its ``generated`` folder."""

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self.directory = os.fspath(directory)
        generated = os.path.join(self.directory, DEFAULT_TMP_FOLDER)
        if not os.path.lexists(generated):
            try:
                os.makedirs(generated, exist_ok=True)
            except OSError as exc:
                raise OSError(f"error creating directory [{self.directory}]: {exc}") from exc

    def write(
        self,
        file_name: str,
        content: bytes | str,
        permissions: int = PERSISTENT_PERMISSIONS,
    ) -> str:
        """Write ``content`` to ``file_name`` in the directory and return its path."""
        path = os.path.join(self.directory, file_name)
        data = content.encode() if isinstance(content, str) else bytes(content)
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, permissions)
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
        except OSError as exc:
            raise OSError(f"error writing to file [{path}]: {exc}") from exc
        return path

    def with_dir(self, directory: str) -> FileWriter:
        """Return a writer for a subdirectory of this one."""
        return FileWriter(os.path.join(self.directory, directory))

    def clean_up(self) -> None:
        """Remove the directory and everything in it."""
        if os.path.exists(self.directory):
            shutil.rmtree(self.directory, ignore_errors=True)


def concat_yaml_resources(*args: bytes) -> bytes:
    """Join YAML resources behind a single leading document separator."""
    return OBJECT_SEPARATOR + b"".join(args)