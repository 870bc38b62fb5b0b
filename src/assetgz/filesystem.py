"""
=============================================================================
READ-ONLY FILE TREES
=============================================================================

The asset server never touches the OS filesystem directly. It talks to a
small "file tree" object that can do exactly two things:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       ReadDirFS PROTOCOL                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   read_dir("css")      →  [DirEntry("app.css", is_dir=False),       │
    │                            DirEntry("vendor",  is_dir=True)]        │
    │                                                                      │
    │   open("css/app.css")  →  binary stream (read-only)                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Paths are always POSIX style and relative to the tree root. The root
itself is ".".

Two implementations ship with the package:

    DirectoryFS   A directory on disk (the usual case)
    ZipFS         A zip archive, handy for assets bundled with a wheel

=============================================================================
"""

import os
import posixpath
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Protocol, Union


@dataclass(frozen=True)
class DirEntry:
    """One child of a directory listing."""

    name: str
    is_dir: bool


class ReadDirFS(Protocol):
    """Anything the index builder and the static handler can read from."""

    def read_dir(self, path: str) -> list[DirEntry]:
        ...

    def open(self, path: str) -> BinaryIO:
        ...


class DirectoryFS:
    """
    Read-only view of a directory on disk.

    Entries are listed in name order so that index construction is
    deterministic. Any path that resolves outside the root (via ".." or a
    symlink) is reported as missing.

    Example:
        fs = DirectoryFS("./public")
        fs.read_dir(".")
        with fs.open("css/app.css") as f:
            data = f.read()
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()

        if not self.root.is_dir():
            raise NotADirectoryError(f"Asset root is not a directory: {root}")

    def _resolve(self, path: str) -> Path:
        full_path = (self.root / path).resolve()

        # Same check as the classic static handler: stay inside root.
        try:
            full_path.relative_to(self.root)
        except ValueError:
            raise FileNotFoundError(f"Path escapes asset root: {path}") from None

        return full_path

    def read_dir(self, path: str) -> list[DirEntry]:
        with os.scandir(self._resolve(path)) as entries:
            return sorted(
                (DirEntry(entry.name, entry.is_dir()) for entry in entries),
                key=lambda entry: entry.name,
            )

    def open(self, path: str) -> BinaryIO:
        full_path = self._resolve(path)
        if full_path.is_dir():
            raise IsADirectoryError(f"Is a directory: {path}")
        return full_path.open("rb")

    def __repr__(self) -> str:
        return f"DirectoryFS({str(self.root)!r})"


class ZipFS:
    """
    Read-only view of a zip archive.

    Zip files store a flat list of member names, so directories are
    synthesized from the "/" separated member paths. An optional ``prefix``
    serves a sub-tree of the archive as the root.

    Member streams returned by ``open`` are seekable, so range requests
    work on zipped assets too.
    """

    def __init__(self, archive: Union[str, Path, BinaryIO], prefix: str = ""):
        self._zip = zipfile.ZipFile(archive)
        self._prefix = prefix.strip("/")
        self._tree: dict[str, dict[str, bool]] = {".": {}}

        for name in self._zip.namelist():
            if self._prefix:
                if not name.startswith(self._prefix + "/"):
                    continue
                name = name[len(self._prefix) + 1:]

            is_dir = name.endswith("/")
            parts = [part for part in name.split("/") if part]
            parent = "."

            for i, part in enumerate(parts):
                child = posixpath.join(parent, part) if parent != "." else part
                last = i == len(parts) - 1
                child_is_dir = is_dir or not last
                self._tree[parent][part] = child_is_dir
                if child_is_dir:
                    self._tree.setdefault(child, {})
                parent = child

    def _member(self, path: str) -> str:
        path = posixpath.normpath(path)
        if path == "." or path.startswith("../") or path == "..":
            raise FileNotFoundError(f"No such asset: {path}")
        return posixpath.join(self._prefix, path) if self._prefix else path

    def read_dir(self, path: str) -> list[DirEntry]:
        key = posixpath.normpath(path)
        if key not in self._tree:
            raise FileNotFoundError(f"No such directory in archive: {path}")
        return [
            DirEntry(name, is_dir)
            for name, is_dir in sorted(self._tree[key].items())
        ]

    def open(self, path: str) -> BinaryIO:
        try:
            return self._zip.open(self._member(path))
        except KeyError:
            raise FileNotFoundError(f"No such asset in archive: {path}") from None

    def close(self) -> None:
        self._zip.close()
