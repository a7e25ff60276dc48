# object_store.py -- Object store for git objects
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

"""Git object store interfaces and implementation.

An object can live in three places: the in-memory cache of decoded
objects, a loose file under ``objects/xx/``, or a pack archive under
``objects/pack/``. Lookups consult them in that order.
"""

__all__ = [
    "MIN_ABBREV_LENGTH",
    "PACKDIR",
    "DiskObjectStore",
]

import os
import tempfile
from collections.abc import Iterator

from .errors import (
    AmbiguousObjectId,
    CorruptObject,
    NotBlobError,
    NotCommitError,
    NotTagError,
    NotTreeError,
    ObjectNotFound,
    WrongObjectException,
)
from .file import GitFile, ensure_dir_exists
from .hash import HashAlgorithm, get_hash_algorithm
from .log_utils import getLogger
from .objects import (
    Blob,
    Commit,
    ObjectID,
    ShaFile,
    Tag,
    Tree,
    decode_frame,
    digest_of,
    encode_frame,
    hex_to_filename,
    is_hex_prefix,
    is_legacy_frame,
)
from .pack import Pack
from .trie import Trie

logger = getLogger(__name__)

PACKDIR = "pack"

# Shorter keys are never looked up.
MIN_ABBREV_LENGTH = 5

PACK_MODE = 0o444


class DiskObjectStore:
    """Git-style object store that exists on disk."""

    def __init__(
        self,
        path: str | os.PathLike[str],
        hash_algorithm: "HashAlgorithm | str | None" = None,
        loose_compression_level: int = -1,
    ) -> None:
        """Open an object store.

        Args:
          path: Path of the object store (the ``objects`` directory).
          hash_algorithm: Hash algorithm naming objects (default SHA-1)
          loose_compression_level: zlib compression level for loose objects
        """
        self.path = os.fspath(path)
        self.pack_dir = os.path.join(self.path, PACKDIR)
        self.hash_algorithm = get_hash_algorithm(hash_algorithm)
        self.loose_compression_level = loose_compression_level
        self._cache: Trie[ShaFile] = Trie()
        self._pack_trie: Trie[tuple[Pack, int]] = Trie()
        self._packs: list[Pack] = []
        self._load_packs()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({self.path!r})>"

    @property
    def packs(self) -> list[Pack]:
        """List with pack objects, in lookup order."""
        return list(self._packs)

    def _load_packs(self) -> None:
        try:
            pack_dir_contents = os.listdir(self.pack_dir)
        except FileNotFoundError:
            return
        for name in sorted(pack_dir_contents):
            if not (name.startswith("pack-") and name.endswith(".pack")):
                continue
            # verify that idx exists first (otherwise the pack was not yet
            # fully written)
            idx_name = name[: -len(".pack")] + ".idx"
            if idx_name not in pack_dir_contents:
                continue
            pack = Pack(os.path.join(self.pack_dir, name), self.hash_algorithm)
            self._packs.append(pack)
            for sha, offset in pack.iterentries():
                # The first pack in lookup order wins for duplicated objects.
                if sha not in self._pack_trie:
                    self._pack_trie.insert(sha, (pack, offset))
            logger.debug("loaded pack %s with %d objects", pack.name, len(pack))

    def reload_packs(self) -> None:
        """Close and reopen every pack archive."""
        self._close_packs()
        self._load_packs()

    def _close_packs(self) -> None:
        for pack in self._packs:
            pack.close()
        self._packs = []
        self._pack_trie.clear()

    def close(self) -> None:
        """Close all open packs and drop the cache."""
        self._close_packs()
        self._cache.clear()

    def clear_cache(self) -> None:
        """Forget all decoded objects."""
        self._cache.clear()

    def _get_shafile_path(self, sha: ObjectID) -> str:
        return hex_to_filename(self.path, sha)

    def contains_loose(self, sha: ObjectID) -> bool:
        """Check if a particular object is present by id as a loose object."""
        return os.path.isfile(self._get_shafile_path(sha))

    def contains_packed(self, sha: ObjectID) -> bool:
        """Check if a particular object is present by id in a pack."""
        return sha in self._pack_trie

    def __contains__(self, sha: object) -> bool:
        """Check if a particular object is present by id.

        Only complete ids are considered.
        """
        if not isinstance(sha, str) or len(sha) != self.hash_algorithm.hex_length:
            return False
        return (
            sha in self._cache
            or self.contains_loose(sha)
            or self.contains_packed(sha)
        )

    def __getitem__(self, key: ObjectID) -> ShaFile:
        return self.get(key)

    def __iter__(self) -> Iterator[ObjectID]:
        """Iterate over the ids of all loose and packed objects."""
        seen = set()
        for sha in self._iter_loose_objects():
            seen.add(sha)
            yield sha
        for sha in self._pack_trie:
            if sha not in seen:
                yield sha

    def _iter_loose_objects(self) -> Iterator[ObjectID]:
        try:
            bases = os.listdir(self.path)
        except FileNotFoundError:
            return
        for base in sorted(bases):
            if len(base) != 2 or not is_hex_prefix(base):
                continue
            for rest in sorted(os.listdir(os.path.join(self.path, base))):
                sha = base + rest
                if len(sha) == self.hash_algorithm.hex_length and is_hex_prefix(sha):
                    yield sha

    def _check_key(self, key: str) -> None:
        if not isinstance(key, str):
            raise ObjectNotFound(key, "object ids are hex strings")
        if len(key) < MIN_ABBREV_LENGTH:
            raise ObjectNotFound(
                key, f"abbreviated ids need at least {MIN_ABBREV_LENGTH} characters"
            )
        if len(key) > self.hash_algorithm.hex_length or not is_hex_prefix(key):
            raise ObjectNotFound(key, "not a hex object id")

    def get(self, key: ObjectID) -> ShaFile:
        """Obtain an object by full or abbreviated id.

        Args:
          key: Hex id, or an abbreviation of at least five characters
        Returns: The decoded object
        Raises:
          ObjectNotFound: if the key is too short, malformed, or names no
            object
          AmbiguousObjectId: if the abbreviation matches several objects
          CorruptObject: if the stored object fails validation
        """
        self._check_key(key)
        hits = self._cache.find(key)
        if len(hits) == 1:
            return hits[0][1]
        obj = self._get_loose_object(key)
        if obj is None:
            obj = self._get_packed_object(key)
        self._cache.insert(obj.id, obj)
        return obj

    def _find_loose(self, key: ObjectID) -> ObjectID | None:
        if len(key) == self.hash_algorithm.hex_length:
            return key if self.contains_loose(key) else None
        dirname = os.path.join(self.path, key[:2])
        rest = key[2:]
        try:
            names = os.listdir(dirname)
        except FileNotFoundError:
            return None
        rest_length = self.hash_algorithm.hex_length - 2
        matches = [
            key[:2] + name
            for name in names
            if name.startswith(rest) and len(name) == rest_length
        ]
        if len(matches) > 1:
            raise AmbiguousObjectId(key, matches)
        if matches:
            return matches[0]
        return None

    def _get_loose_object(self, key: ObjectID) -> ShaFile | None:
        sha = self._find_loose(key)
        if sha is None:
            return None
        path = self._get_shafile_path(sha)
        try:
            with GitFile(path, "rb") as f:
                buf = f.read()
        except FileNotFoundError:
            return None
        if not is_legacy_frame(buf):
            raise CorruptObject(sha, "not a loose object")
        type_name, payload = decode_frame(buf, sha)
        if digest_of(type_name, payload, self.hash_algorithm) != sha:
            raise CorruptObject(sha, "object id does not match contents")
        return ShaFile.from_raw_string(type_name, payload, sha, self.hash_algorithm)

    def _get_packed_object(self, key: ObjectID) -> ShaFile:
        hits = self._pack_trie.find(key)
        if not hits:
            raise ObjectNotFound(key)
        if len(hits) > 1:
            raise AmbiguousObjectId(key, [sha for sha, _ in hits])
        sha, (pack, offset) = hits[0]
        try:
            payload, type_name = pack.get_object(offset)
        except CorruptObject as exc:
            if exc.sha is None:
                exc.sha = sha
            raise
        return ShaFile.from_raw_string(type_name, payload, sha, self.hash_algorithm)

    def _get_typed(
        self, key: ObjectID, cls: type[ShaFile], error: type[WrongObjectException]
    ) -> ShaFile:
        obj = self.get(key)
        if not isinstance(obj, cls):
            raise error(obj.id, obj.type_name)
        return obj

    def get_tree(self, key: ObjectID) -> Tree:
        """Obtain a tree, raising NotTreeError for any other type."""
        return self._get_typed(key, Tree, NotTreeError)  # type: ignore[return-value]

    def get_blob(self, key: ObjectID) -> Blob:
        """Obtain a blob, raising NotBlobError for any other type."""
        return self._get_typed(key, Blob, NotBlobError)  # type: ignore[return-value]

    def get_commit(self, key: ObjectID) -> Commit:
        """Obtain a commit, raising NotCommitError for any other type."""
        return self._get_typed(key, Commit, NotCommitError)  # type: ignore[return-value]

    def get_tag(self, key: ObjectID) -> Tag:
        """Obtain a tag, raising NotTagError for any other type."""
        return self._get_typed(key, Tag, NotTagError)  # type: ignore[return-value]

    def _write_loose(self, sha: ObjectID, type_name: str, payload: bytes) -> None:
        path = self._get_shafile_path(sha)
        if os.path.exists(path):
            return  # Already there, no need to write again
        dirname = os.path.dirname(path)
        ensure_dir_exists(dirname)
        # Writers of the same object stage under distinct names.
        fd, tmp_path = tempfile.mkstemp(dir=dirname, prefix="tmp_obj_")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(encode_frame(type_name, payload, self.loose_compression_level))
            os.chmod(tmp_path, PACK_MODE)
            os.replace(tmp_path, path)
        except BaseException:
            try:
                os.remove(tmp_path)
            except FileNotFoundError:
                pass
            raise
        logger.debug("wrote loose %s %s", type_name, sha)

    def put(self, type_name: str, payload: bytes) -> ObjectID:
        """Store raw content as a loose object.

        Existing loose files are never rewritten. The decoded object is
        cached either way.

        Args:
          type_name: Type tag (blob, tree, commit or tag)
          payload: Raw object contents
        Returns: The id of the object
        """
        obj = ShaFile.from_raw_string(
            type_name, payload, hash_algorithm=self.hash_algorithm
        )
        return self.add_object(obj)

    def add_object(self, obj: ShaFile) -> ObjectID:
        """Add a single object to this object store.

        Args:
          obj: Object to add
        Returns: The id of the object
        """
        if obj._hash_algorithm is not self.hash_algorithm:
            obj._hash_algorithm = self.hash_algorithm
            obj._id = None
        sha = obj.id
        self._write_loose(sha, obj.type_name, obj.as_raw_string())
        self._cache.insert(sha, obj)
        return sha
