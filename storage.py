# -*- coding: utf-8 -*-
"""
Upload library on disk, confined to one root directory.

Every client supplied path is relative to the root and goes through
StorageGuard.resolve() before the filesystem is touched. resolve() raises
PathEscape for:
- any ".." component, absolute paths, "~" paths, NUL bytes;
- a canonical (symlink resolved) result outside the canonical root.

Batch operations (move, delete_many) resolve every path first; a single escape
fails the whole batch before anything is changed. After validation the batch
runs item by item and is not rolled back if the OS fails midway.
"""

import logging
import os
import shutil
import stat
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from utils import media_type

log = logging.getLogger(__name__)


class PathEscape(Exception):
    """A path would leave the storage root."""


@dataclass
class StoredEntry:
    path: str  # relative to the root, "/" separated
    kind: str  # "file" | "dir"
    size: int
    modified: float
    media_type: str

    @property
    def basename(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def extension(self) -> str:
        return os.path.splitext(self.basename)[1] if self.kind == "file" else ""

    def to_resource(self, adapter: str) -> dict:
        """Entry in the shape the file-manager client expects."""
        return {
            "type": self.kind,
            "path": f"{adapter}://{self.path}",
            "visibility": "public",
            "last_modified": int(self.modified),
            "mime_type": self.media_type,
            "extra_metadata": [],
            "basename": self.basename,
            "extension": self.extension,
            "storage": adapter,
            "file_size": self.size,
        }


def strip_adapter(path: str, adapter: str) -> str:
    """``"PUBLIC://a/b"`` -> ``"a/b"``."""
    prefix = f"{adapter}://"
    return path[len(prefix):] if path.startswith(prefix) else path


class StorageGuard:
    def __init__(self, root: str):
        os.makedirs(root, exist_ok=True)
        self.root = os.path.realpath(root)

    # ------------------------------ paths ------------------------------ #
    def resolve(self, relative_path: str) -> str:
        """Absolute path of ``relative_path`` inside the root, or PathEscape."""
        target = os.path.realpath(os.path.join(self.root, *self._parts(relative_path)))
        if not self._inside(target):
            self._escape(relative_path)
        return target

    def _parts(self, relative_path: str) -> List[str]:
        candidate = (relative_path or "").replace("\\", "/")

        if "\x00" in candidate or candidate.startswith(("/", "~")):
            self._escape(relative_path)

        parts = [p for p in candidate.split("/") if p not in ("", ".")]
        if ".." in parts:
            self._escape(relative_path)
        return parts

    def _inside(self, absolute_path: str) -> bool:
        return os.path.commonpath([self.root, absolute_path]) == self.root

    def relative(self, absolute_path: str) -> str:
        rel = os.path.relpath(absolute_path, self.root)
        return "" if rel == "." else rel.replace(os.sep, "/")

    def _escape(self, relative_path: str):
        log.warning("path escape attempt rejected: %r (root %s)", relative_path, self.root)
        raise PathEscape(relative_path)

    def _entry(self, absolute_path: str) -> StoredEntry:
        info = os.lstat(absolute_path)
        if stat.S_ISLNK(info.st_mode):
            # links are described by their target only while it exists inside the root
            target = os.path.realpath(absolute_path)
            if self._inside(target) and os.path.exists(target):
                info = os.stat(target)
        is_dir = stat.S_ISDIR(info.st_mode)
        return StoredEntry(
            path=self.relative(absolute_path),
            kind="dir" if is_dir else "file",
            size=0 if is_dir else info.st_size,
            modified=info.st_mtime,
            media_type="inode/directory" if is_dir else media_type(absolute_path),
        )

    # ------------------------------ reading ----------------------------- #
    def list(self, relative_dir: str = "") -> List[StoredEntry]:
        """Entries directly below ``relative_dir``; directories first."""
        directory = self.resolve(relative_dir)
        entries = []
        for name in sorted(os.listdir(directory)):
            try:
                entries.append(self._entry(os.path.join(directory, name)))
            except FileNotFoundError:
                log.info("%s vanished while listing %s", name, self.relative(directory))
        return sorted(entries, key=lambda e: (e.kind != "dir", e.basename.lower()))

    def subfolders(self, relative_dir: str = "") -> List[StoredEntry]:
        return [e for e in self.list(relative_dir) if e.kind == "dir"]

    def read(self, relative_path: str) -> bytes:
        path = self.resolve(relative_path)
        with open(path, "rb") as fh:
            return fh.read()

    # ----------------------------- mutating ----------------------------- #
    def create_dir(self, relative_dir: str, name: str) -> str:
        self.resolve(relative_dir)
        target = self.resolve(self._join(relative_dir, self._plain_name(name)))
        os.mkdir(target)
        log.info("created directory %s", self.relative(target))
        return self.relative(target)

    def rename(self, relative_path: str, new_name: str) -> str:
        source = self._mutable(relative_path)
        target = os.path.join(os.path.dirname(source), self._plain_name(new_name))
        if os.path.lexists(target):
            raise FileExistsError(self.relative(target))
        os.rename(source, target)
        log.info("renamed %s -> %s", self.relative(source), self.relative(target))
        return self.relative(target)

    def move(self, relative_paths: Sequence[str], destination_dir: str) -> List[str]:
        destination = self.resolve(destination_dir)
        if not os.path.isdir(destination):
            raise NotADirectoryError(destination_dir)

        plan: List[Tuple[str, str]] = []
        for relative_path in relative_paths:
            source = self._mutable(relative_path)
            target = os.path.join(destination, os.path.basename(source))
            if os.path.commonpath([source, destination]) == source:
                raise ValueError(f"can't move {relative_path!r} into itself")
            plan.append((source, target))

        moved = []
        for source, target in plan:
            if source == target:
                continue
            if os.path.lexists(target):
                raise FileExistsError(self.relative(target))
            shutil.move(source, target)
            moved.append(self.relative(target))
            log.info("moved %s -> %s", self.relative(source), self.relative(target))
        return moved

    def delete(self, relative_path: str, recursive: bool = False) -> None:
        self._remove(self._mutable(relative_path), recursive)

    def delete_many(self, items: Iterable[Tuple[str, bool]]) -> None:
        """Delete ``(path, recursive)`` pairs after all of them resolved."""
        plan = [(self._mutable(path), recursive) for path, recursive in items]
        for path, recursive in plan:
            self._remove(path, recursive)

    def save_upload(self, relative_dir: str, filename: str, file_storage) -> str:
        """Write an uploaded werkzeug ``FileStorage`` as ``relative_dir/filename``."""
        directory = self.resolve(relative_dir)
        target = self.resolve(self._join(relative_dir, self._plain_name(filename)))
        if not os.path.isdir(directory):
            raise NotADirectoryError(relative_dir)
        file_storage.save(target)
        log.info("stored upload %s", self.relative(target))
        return self.relative(target)

    # ------------------------------ helpers ----------------------------- #
    def _mutable(self, relative_path: str) -> str:
        """Path of an entry that is going to be changed; the root itself is off limits.

        Only the parent directory is canonicalized. A symlink is changed as the
        link itself and its target is never touched.
        """
        parts = self._parts(relative_path)
        if not parts:
            self._escape(relative_path)
        path = os.path.join(self.resolve("/".join(parts[:-1])), parts[-1])
        if not os.path.lexists(path):
            raise FileNotFoundError(relative_path)
        return path

    def _remove(self, path: str, recursive: bool) -> None:
        if os.path.isdir(path) and not os.path.islink(path):
            if recursive:
                shutil.rmtree(path)
            else:
                os.rmdir(path)
        else:
            os.remove(path)
        log.info("deleted %s", self.relative(path))

    def _plain_name(self, name: str) -> str:
        if not name or name in (".", "..") or "/" in name or "\\" in name or "\x00" in name:
            self._escape(name)
        return name

    @staticmethod
    def _join(relative_dir: str, name: str) -> str:
        relative_dir = (relative_dir or "").rstrip("/")
        return f"{relative_dir}/{name}" if relative_dir else name
