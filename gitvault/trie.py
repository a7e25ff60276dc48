# trie.py -- Prefix trie over hex object ids
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

"""Prefix trie keyed by hex object ids.

The trie branches on one hex digit per level (16-ary). A key is stored at
the shallowest node on its path that it does not share with any other key,
so lookups cost O(key length) whatever the number of entries, and a single
object never needs a chain of 40 nodes.

Lookups by abbreviated id return every entry sharing the prefix; callers
decide what more than one match means.
"""

__all__ = ["Trie"]

from collections.abc import Iterator
from typing import Generic, TypeVar

V = TypeVar("V")


class _Node(Generic[V]):
    __slots__ = ("children", "key", "value")

    def __init__(self) -> None:
        self.key: str | None = None
        self.value: V | None = None
        self.children: dict[str, "_Node[V]"] | None = None


class Trie(Generic[V]):
    """Associative container with exact and prefix lookup over hex keys.

    Invariant: a node holding a key longer than the node's depth has no
    children; only a key ending exactly at a node may share it with
    children.
    """

    def __init__(self) -> None:
        self._root: _Node[V] = _Node()
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return any(k == key for k, _ in self.find(key))

    def __iter__(self) -> Iterator[str]:
        for key, _ in self._iter_node(self._root):
            yield key

    def clear(self) -> None:
        """Remove all entries."""
        self._root = _Node()
        self._size = 0

    def insert(self, key: str, value: V) -> None:
        """Insert value under key, replacing any previous value."""
        node = self._root
        depth = 0
        while True:
            if node.key is None and not node.children:
                node.key = key
                node.value = value
                self._size += 1
                return
            if node.key == key:
                node.value = value
                return
            if node.key is not None and len(node.key) > depth:
                # Push the resident entry one level down to make room.
                resident: _Node[V] = _Node()
                resident.key = node.key
                resident.value = node.value
                node.children = {node.key[depth]: resident}
                node.key = None
                node.value = None
                continue
            if len(key) == depth:
                node.key = key
                node.value = value
                self._size += 1
                return
            if node.children is None:
                node.children = {}
            node = node.children.setdefault(key[depth], _Node())
            depth += 1

    def find(self, key: str) -> list[tuple[str, V]]:
        """Find entries matching key.

        Args:
          key: A full key (at most one result) or a prefix of keys
        Returns: list of (key, value) tuples for every entry starting with key
        """
        node = self._root
        depth = 0
        while True:
            if node.key is not None and len(node.key) > depth:
                if node.key.startswith(key):
                    return [(node.key, node.value)]  # type: ignore[list-item]
                return []
            if depth >= len(key):
                return list(self._iter_node(node))
            if not node.children:
                return []
            child = node.children.get(key[depth])
            if child is None:
                return []
            node = child
            depth += 1

    def get(self, key: str) -> V | None:
        """Return the value stored under exactly key, or None."""
        for found, value in self.find(key):
            if found == key:
                return value
        return None

    def _iter_node(self, node: _Node[V]) -> Iterator[tuple[str, V]]:
        stack = [node]
        while stack:
            current = stack.pop()
            if current.key is not None:
                yield current.key, current.value  # type: ignore[misc]
            if current.children:
                stack.extend(
                    current.children[c] for c in sorted(current.children, reverse=True)
                )
