# worktree.py -- In-memory working tree staged for commit
# Copyright (C) 2026 The gitvault contributors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# gitvault is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Mutable snapshot of a stored tree.

A WorkingTree mirrors a tree object from the store. Subdirectories and
file contents are only read from the store when first accessed. Changes
mark the tree and all of its ancestors as modified; save() writes the
modified subtrees back, deepest first.
"""

__all__ = [
    "BLOB_MODE",
    "TREE_MODE",
    "WorkingTree",
]

import stat
from collections.abc import Iterator
from typing import TYPE_CHECKING, Union

from .objects import BLOB, ObjectID, Tree

if TYPE_CHECKING:
    from .object_store import DiskObjectStore

BLOB_MODE = 0o100644
TREE_MODE = 0o040000


class _BlobEntry:
    """A file in a working tree; contents are loaded on first access."""

    __slots__ = ("_data", "mode", "sha")

    def __init__(
        self, mode: int, sha: ObjectID | None = None, data: bytes | None = None
    ) -> None:
        self.mode = mode
        self.sha = sha
        self._data = data

    def data(self, store: "DiskObjectStore") -> bytes:
        if self._data is None:
            assert self.sha is not None
            self._data = store.get_blob(self.sha).data
        return self._data


_Entry = Union["WorkingTree", _BlobEntry]


def _split_path(path: str) -> list[str]:
    parts = [p for p in path.split("/") if p]
    if not parts:
        raise KeyError(path)
    return parts


class WorkingTree:
    """A directory whose entries can be read and changed in memory."""

    def __init__(
        self,
        object_store: "DiskObjectStore",
        tree_id: ObjectID | None = None,
        mode: int = TREE_MODE,
    ) -> None:
        """Create a working tree.

        Args:
          object_store: Store that holds the tree and receives saved objects
          tree_id: Id of the stored tree to mirror; None for an empty tree
          mode: Mode recorded for this tree in its parent
        """
        self._store = object_store
        self.id = tree_id
        self.mode = mode
        self._parent: WorkingTree | None = None
        self._entries: dict[str, _Entry] | None = None if tree_id else {}
        self._modified = False

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.id}>"

    @property
    def modified(self) -> bool:
        """Whether this tree changed since it was loaded or saved."""
        return self._modified

    @modified.setter
    def modified(self, value: bool) -> None:
        self._modified = value
        if value and self._parent is not None:
            self._parent.modified = True

    def _load(self) -> dict[str, _Entry]:
        if self._entries is None:
            assert self.id is not None
            tree = self._store.get_tree(self.id)
            entries: dict[str, _Entry] = {}
            for name, mode, sha in tree.items():
                if stat.S_ISDIR(mode):
                    child = WorkingTree(self._store, sha, mode)
                    child._parent = self
                    entries[name] = child
                else:
                    entries[name] = _BlobEntry(mode, sha)
            self._entries = entries
        return self._entries

    def _walk(self, parts: list[str], create: bool) -> "WorkingTree":
        tree = self
        for name in parts:
            entries = tree._load()
            child = entries.get(name)
            if isinstance(child, WorkingTree):
                tree = child
            elif child is None and create:
                new = WorkingTree(self._store)
                new._parent = tree
                entries[name] = new
                tree = new
            elif child is None:
                raise KeyError(name)
            else:
                raise NotADirectoryError(name)
        return tree

    def __getitem__(self, path: str) -> "bytes | WorkingTree":
        """Return file contents (bytes) or a subdirectory by slash path."""
        *dirs, name = _split_path(path)
        try:
            entry = self._walk(dirs, create=False)._load()[name]
        except NotADirectoryError:
            raise KeyError(path) from None
        if isinstance(entry, WorkingTree):
            return entry
        return entry.data(self._store)

    def __setitem__(self, path: str, value: "bytes | str | WorkingTree") -> None:
        """Store a file or a subdirectory, creating parent directories."""
        *dirs, name = _split_path(path)
        parent = self._walk(dirs, create=True)
        entries = parent._load()
        if isinstance(value, WorkingTree):
            value._parent = parent
            entries[name] = value
        else:
            if isinstance(value, str):
                value = value.encode("utf-8")
            entries[name] = _BlobEntry(BLOB_MODE, data=value)
        parent.modified = True

    def __delitem__(self, path: str) -> None:
        *dirs, name = _split_path(path)
        try:
            parent = self._walk(dirs, create=False)
        except NotADirectoryError:
            raise KeyError(path) from None
        del parent._load()[name]
        parent.modified = True

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, str):
            return False
        try:
            self[path]
        except KeyError:
            return False
        return True

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._load()))

    def __len__(self) -> int:
        return len(self._load())

    def keys(self) -> list[str]:
        return sorted(self._load())

    def items(self) -> list[tuple[str, "bytes | WorkingTree"]]:
        return [(name, self[name]) for name in self.keys()]

    def save(self) -> ObjectID:
        """Write modified subtrees and files to the store.

        Returns: The id of this tree
        """
        if not self._modified and self.id is not None:
            return self.id
        tree = Tree()
        for name, entry in self._load().items():
            if isinstance(entry, WorkingTree):
                tree.add(name, entry.mode, entry.save())
            else:
                if entry.sha is None:
                    entry.sha = self._store.put(BLOB, entry.data(self._store))
                tree.add(name, entry.mode, entry.sha)
        self.id = self._store.add_object(tree)
        self._modified = False
        return self.id
