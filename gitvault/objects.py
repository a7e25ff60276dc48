# objects.py -- Object framing and typed object records
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

"""Object framing and the typed object records.

Every object is framed as ``"<type> <length>\\0" + payload``; its id is the
hex digest of that envelope. Loose objects store the envelope zlib
compressed.

The set of object types is closed: blob, tree, commit and tag. Decoding an
envelope with any other type tag is an error.
"""

__all__ = [
    "BLOB",
    "COMMIT",
    "TAG",
    "TREE",
    "Blob",
    "Commit",
    "ObjectID",
    "ShaFile",
    "Tag",
    "Tree",
    "TreeEntry",
    "User",
    "decode_frame",
    "digest_of",
    "encode_frame",
    "format_timezone",
    "hex_to_filename",
    "is_hex_prefix",
    "is_legacy_frame",
    "object_class",
    "object_header",
    "parse_timezone",
    "parse_tree",
    "serialize_tree",
    "sorted_tree_items",
    "valid_hexsha",
]

import binascii
import os
import stat
import time
import zlib
from collections.abc import Iterable, Iterator
from typing import NamedTuple

from .errors import CorruptObject
from .hash import DEFAULT_HASH_ALGORITHM, HashAlgorithm

ObjectID = str

BLOB = "blob"
TREE = "tree"
COMMIT = "commit"
TAG = "tag"

_HEX_DIGITS = frozenset("0123456789abcdef")

# Header fields for commits
_TREE_HEADER = b"tree"
_PARENT_HEADER = b"parent"
_AUTHOR_HEADER = b"author"
_COMMITTER_HEADER = b"committer"
_ENCODING_HEADER = b"encoding"

# Header fields for tags
_OBJECT_HEADER = b"object"
_TYPE_HEADER = b"type"
_TAG_HEADER = b"tag"
_TAGGER_HEADER = b"tagger"


def is_hex_prefix(text: str) -> bool:
    """Check whether text consists only of lowercase hex digits."""
    return bool(text) and all(c in _HEX_DIGITS for c in text)


def valid_hexsha(hex: str, hash_algorithm: HashAlgorithm | None = None) -> bool:
    """Check whether hex is a complete object id.

    Args:
      hex: Candidate id
      hash_algorithm: Algorithm whose id length to check against. When None,
        both SHA-1 and SHA-256 lengths are accepted.
    """
    if hash_algorithm is None:
        if len(hex) not in (40, 64):
            return False
    elif len(hex) != hash_algorithm.hex_length:
        return False
    return is_hex_prefix(hex)


def hex_to_filename(path: str | os.PathLike[str], hex: str) -> str:
    """Return the loose object path for a (possibly abbreviated) hex id.

    The first two characters name the fan-out directory, the rest the file.
    """
    return os.path.join(path, hex[:2], hex[2:])


def object_header(type_name: str, length: int) -> bytes:
    """Return the envelope header for an object of the given type and size."""
    return f"{type_name} {length}\0".encode("ascii")


def digest_of(
    type_name: str,
    payload: bytes,
    hash_algorithm: HashAlgorithm = DEFAULT_HASH_ALGORITHM,
) -> ObjectID:
    """Compute the id of an object.

    Args:
      type_name: Type tag of the object
      payload: Raw (uncompressed) object contents
      hash_algorithm: Hash algorithm naming objects in the repository
    Returns: lowercase hex digest of the framed object
    """
    return hash_algorithm.hash_object_hex(
        object_header(type_name, len(payload)), payload
    )


def is_legacy_frame(buf: bytes) -> bool:
    """Check whether buf starts like a zlib stream as used by loose objects.

    The first byte must be 0x78 (deflate, 32K window) and the first two
    bytes, read as a big-endian 16-bit number, must be a multiple of 31.
    """
    if len(buf) < 2:
        return False
    word = (buf[0] << 8) + buf[1]
    return buf[0] == 0x78 and (word % 31) == 0


def encode_frame(type_name: str, payload: bytes, level: int = -1) -> bytes:
    """Compress an object envelope for storage as a loose object."""
    compobj = zlib.compressobj(level)
    return (
        compobj.compress(object_header(type_name, len(payload)))
        + compobj.compress(payload)
        + compobj.flush()
    )


def _decompress(buf: bytes, sha: ObjectID | None) -> bytes:
    dcomp = zlib.decompressobj()
    try:
        text = dcomp.decompress(buf)
        text += dcomp.flush()
    except zlib.error as exc:
        raise CorruptObject(sha, f"invalid zlib stream ({exc})") from exc
    if not dcomp.eof:
        raise CorruptObject(sha, "truncated zlib stream")
    if dcomp.unused_data:
        raise CorruptObject(sha, "trailing data after zlib stream")
    return text


def decode_frame(buf: bytes, sha: ObjectID | None = None) -> tuple[str, bytes]:
    """Decode a compressed object envelope.

    Args:
      buf: Compressed envelope, as read from a loose object file
      sha: Id of the object, used in error messages
    Returns: Tuple of (type name, payload)
    Raises:
      CorruptObject: if the stream, the header or the declared length do
        not validate
    """
    text = _decompress(buf, sha)
    header, sep, payload = text.partition(b"\0")
    if not sep:
        raise CorruptObject(sha, "missing object header terminator")
    try:
        type_bytes, size_bytes = header.split(b" ")
    except ValueError as exc:
        raise CorruptObject(sha, f"malformed object header {header!r}") from exc
    if not size_bytes.isdigit() or (len(size_bytes) > 1 and size_bytes[:1] == b"0"):
        raise CorruptObject(sha, f"malformed object size {size_bytes!r}")
    type_name = type_bytes.decode("ascii", "replace")
    if type_name not in _TYPE_MAP:
        raise CorruptObject(sha, f"unknown object type {type_name!r}")
    if len(payload) != int(size_bytes):
        raise CorruptObject(sha, "bad object")
    return type_name, payload


def parse_timezone(text: bytes) -> int:
    """Parse a timezone like ``+0100`` into an offset in seconds."""
    if not text or text[:1] not in b"+-" or not text[1:].isdigit():
        raise ValueError(f"invalid timezone {text!r}")
    offset = int(text[1:])
    signum = -1 if text[:1] == b"-" else 1
    hours = offset // 100
    minutes = offset % 100
    return signum * (hours * 3600 + minutes * 60)


def format_timezone(offset: int) -> bytes:
    """Format an offset in seconds as ``+HHMM``."""
    if offset % 60 != 0:
        raise ValueError("Unable to handle non-minute offset.")
    sign = "-" if offset < 0 else "+"
    offset = abs(offset)
    return f"{sign}{offset // 3600:02d}{(offset // 60) % 60:02d}".encode("ascii")


class User:
    """An identity stamped on commits and tags."""

    def __init__(
        self,
        name: str,
        email: str,
        time: int | None = None,
        timezone: int = 0,
    ) -> None:
        self.name = name
        self.email = email
        self.time = time
        self.timezone = timezone

    def __repr__(self) -> str:
        return f"User({self.name!r}, {self.email!r}, {self.time!r}, {self.timezone!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, User):
            return NotImplemented
        return (self.name, self.email, self.time, self.timezone) == (
            other.name,
            other.email,
            other.time,
            other.timezone,
        )

    def identity(self) -> bytes:
        return f"{self.name} <{self.email}>".encode("utf-8")

    def format(self) -> bytes:
        """Format as ``Name <email> epoch +zone``, stamping now if unset."""
        when = self.time if self.time is not None else int(time.time())
        return b"%s %d %s" % (self.identity(), when, format_timezone(self.timezone))

    @classmethod
    def parse(cls, value: bytes) -> "User":
        """Parse an identity line.

        Raises:
          ValueError: if the line is malformed
        """
        try:
            sep = value.index(b"> ")
        except ValueError:
            identity, when, zone = value, None, 0
        else:
            identity = value[: sep + 1]
            timetext, _, zonetext = value[sep + 2 :].partition(b" ")
            when = int(timetext)
            zone = parse_timezone(zonetext)
        name, lt, email = identity.rpartition(b"<")
        if not lt or not email.endswith(b">"):
            raise ValueError(f"invalid identity {identity!r}")
        return cls(
            name.rstrip(b" ").decode("utf-8", "replace"),
            email[:-1].decode("utf-8", "replace"),
            when,
            zone,
        )


class ShaFile:
    """Base class for the typed object records."""

    type_name: str

    def __init__(self) -> None:
        self._raw: bytes | None = None
        self._id: ObjectID | None = None
        self._hash_algorithm = DEFAULT_HASH_ALGORITHM

    @staticmethod
    def from_raw_string(
        type_name: str,
        payload: bytes,
        sha: ObjectID | None = None,
        hash_algorithm: HashAlgorithm = DEFAULT_HASH_ALGORITHM,
    ) -> "ShaFile":
        """Create an object of the indicated type from its raw payload.

        Args:
          type_name: Type tag of the object
          payload: Raw, uncompressed payload
          sha: Known id of the object; computed lazily when None
          hash_algorithm: Hash algorithm naming objects in the repository
        Raises:
          CorruptObject: if the type is unknown or the payload does not parse
        """
        obj = object_class(type_name)()
        obj._hash_algorithm = hash_algorithm
        try:
            obj._deserialize(payload)
        except (ValueError, LookupError) as exc:
            raise CorruptObject(sha, f"unable to parse {type_name} ({exc})") from exc
        obj._raw = payload
        obj._id = sha
        return obj

    def _deserialize(self, payload: bytes) -> None:
        raise NotImplementedError(self._deserialize)

    def _serialize(self) -> bytes:
        raise NotImplementedError(self._serialize)

    def _changed(self) -> None:
        self._raw = None
        self._id = None

    def as_raw_string(self) -> bytes:
        """Return the raw payload of this object."""
        if self._raw is None:
            self._raw = self._serialize()
        return self._raw

    def raw_length(self) -> int:
        """Returns the length of the raw payload of this object."""
        return len(self.as_raw_string())

    def as_legacy_object(self, compression_level: int = -1) -> bytes:
        """Return the compressed envelope used for loose storage."""
        return encode_frame(self.type_name, self.as_raw_string(), compression_level)

    @property
    def id(self) -> ObjectID:
        """The hex id of this object."""
        if self._id is None:
            self._id = digest_of(
                self.type_name, self.as_raw_string(), self._hash_algorithm
            )
        return self._id

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.id}>"

    def __eq__(self, other: object) -> bool:
        """Return true if the ids of the two objects match."""
        if not isinstance(other, ShaFile):
            return NotImplemented
        return self.type_name == other.type_name and self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


class Blob(ShaFile):
    """A file's contents."""

    type_name = BLOB

    def __init__(self, data: bytes = b"") -> None:
        super().__init__()
        self._data = data

    @classmethod
    def from_string(cls, data: bytes) -> "Blob":
        return cls(data)

    def _deserialize(self, payload: bytes) -> None:
        self._data = payload

    def _serialize(self) -> bytes:
        return self._data

    @property
    def data(self) -> bytes:
        """The contents of the blob."""
        return self._data

    @data.setter
    def data(self, value: bytes) -> None:
        self._data = value
        self._changed()


class TreeEntry(NamedTuple):
    """Named tuple encapsulating a single tree entry."""

    path: str
    mode: int
    sha: ObjectID


def parse_tree(text: bytes, sha_length: int = 20) -> Iterator[TreeEntry]:
    """Parse a binary tree payload.

    Args:
      text: Serialized text to parse
      sha_length: Length of binary ids in the tree
    Returns: iterator over TreeEntry tuples
    Raises:
      ValueError: if the payload is truncated or malformed
    """
    count = 0
    length = len(text)
    while count < length:
        mode_end = text.index(b" ", count)
        mode_text = text[count:mode_end]
        if not mode_text or not mode_text.isdigit():
            raise ValueError(f"invalid mode {mode_text!r}")
        mode = int(mode_text, 8)
        name_end = text.index(b"\0", mode_end)
        name = text[mode_end + 1 : name_end]
        count = name_end + 1 + sha_length
        if count > length:
            raise ValueError("tree entry extends beyond end of tree")
        raw_sha = text[name_end + 1 : count]
        yield TreeEntry(
            name.decode("utf-8", "surrogateescape"),
            mode,
            binascii.hexlify(raw_sha).decode("ascii"),
        )


def sorted_tree_items(entries: dict[str, tuple[int, ObjectID]]) -> list[TreeEntry]:
    """Return tree entries in the order in which they would be serialized.

    Directories sort as if their name carried a trailing slash.
    """

    def key_entry(item: tuple[str, tuple[int, ObjectID]]) -> str:
        name, (mode, _) = item
        if stat.S_ISDIR(mode):
            return name + "/"
        return name

    return [
        TreeEntry(name, mode, sha)
        for name, (mode, sha) in sorted(entries.items(), key=key_entry)
    ]


def serialize_tree(items: Iterable[TreeEntry]) -> bytes:
    """Serialize sorted tree entries to the binary tree format."""
    chunks = []
    for name, mode, hexsha in items:
        chunks.append(
            b"%o %s\0%s"
            % (
                mode,
                name.encode("utf-8", "surrogateescape"),
                binascii.unhexlify(hexsha),
            )
        )
    return b"".join(chunks)


class Tree(ShaFile):
    """A directory listing: names mapped to (mode, id)."""

    type_name = TREE

    def __init__(self) -> None:
        super().__init__()
        self._entries: dict[str, tuple[int, ObjectID]] = {}

    def _deserialize(self, payload: bytes) -> None:
        self._entries = {
            name: (mode, sha)
            for name, mode, sha in parse_tree(payload, self._hash_algorithm.oid_length)
        }

    def _serialize(self) -> bytes:
        return serialize_tree(self.items())

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __getitem__(self, name: str) -> tuple[int, ObjectID]:
        return self._entries[name]

    def __setitem__(self, name: str, value: tuple[int, ObjectID]) -> None:
        mode, hexsha = value
        if not name or "/" in name or "\0" in name:
            raise ValueError(f"invalid tree entry name {name!r}")
        self._entries[name] = (mode, hexsha)
        self._changed()

    def __delitem__(self, name: str) -> None:
        del self._entries[name]
        self._changed()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def add(self, name: str, mode: int, hexsha: ObjectID) -> None:
        """Add an entry to the tree."""
        self[name] = (mode, hexsha)

    def items(self) -> list[TreeEntry]:
        """Return entries in the order in which they would be serialized."""
        return sorted_tree_items(self._entries)


class Commit(ShaFile):
    """A history record: a tree snapshot plus its parents and metadata."""

    type_name = COMMIT

    def __init__(
        self,
        tree: ObjectID | None = None,
        parents: Iterable[ObjectID] = (),
        author: User | None = None,
        committer: User | None = None,
        message: str = "",
    ) -> None:
        super().__init__()
        self._tree = tree
        self._parents = list(parents)
        self._author = author
        self._committer = committer if committer is not None else author
        self._message = message
        self._encoding: bytes | None = None
        self._extra: list[tuple[bytes, bytes]] = []

    def _deserialize(self, payload: bytes) -> None:
        self._tree = None
        self._parents = []
        self._author = self._committer = None
        self._encoding = None
        self._extra = []
        headers, body = _parse_headers(payload)
        for field, value in headers:
            if field == _TREE_HEADER:
                self._tree = value.decode("ascii")
            elif field == _PARENT_HEADER:
                self._parents.append(value.decode("ascii"))
            elif field == _AUTHOR_HEADER:
                self._author = User.parse(value)
            elif field == _COMMITTER_HEADER:
                self._committer = User.parse(value)
            elif field == _ENCODING_HEADER:
                self._encoding = value
            else:
                self._extra.append((field, value))
        if self._tree is None:
            raise ValueError("commit has no tree")
        self._message = body.decode(
            (self._encoding or b"utf-8").decode("ascii"), "surrogateescape"
        )

    def _serialize(self) -> bytes:
        if self._tree is None or self._author is None or self._committer is None:
            raise ValueError("commit requires a tree, an author and a committer")
        headers = [(_TREE_HEADER, self._tree.encode("ascii"))]
        headers.extend((_PARENT_HEADER, p.encode("ascii")) for p in self._parents)
        headers.append((_AUTHOR_HEADER, self._author.format()))
        headers.append((_COMMITTER_HEADER, self._committer.format()))
        if self._encoding:
            headers.append((_ENCODING_HEADER, self._encoding))
        headers.extend(self._extra)
        body = self._message.encode(
            (self._encoding or b"utf-8").decode("ascii"), "surrogateescape"
        )
        return _format_headers(headers, body)

    @property
    def tree(self) -> ObjectID | None:
        """Id of the tree that is the state of this commit."""
        return self._tree

    @tree.setter
    def tree(self, value: ObjectID) -> None:
        self._tree = value
        self._changed()

    @property
    def parents(self) -> list[ObjectID]:
        """Ids of the parents of this commit."""
        return list(self._parents)

    @parents.setter
    def parents(self, value: Iterable[ObjectID]) -> None:
        self._parents = list(value)
        self._changed()

    @property
    def author(self) -> User | None:
        return self._author

    @author.setter
    def author(self, value: User) -> None:
        self._author = value
        self._changed()

    @property
    def committer(self) -> User | None:
        return self._committer

    @committer.setter
    def committer(self, value: User) -> None:
        self._committer = value
        self._changed()

    @property
    def message(self) -> str:
        return self._message

    @message.setter
    def message(self, value: str) -> None:
        self._message = value
        self._changed()

    @property
    def extra(self) -> list[tuple[bytes, bytes]]:
        """Headers this implementation does not interpret (e.g. gpgsig)."""
        return list(self._extra)


class Tag(ShaFile):
    """An annotated tag."""

    type_name = TAG

    def __init__(self) -> None:
        super().__init__()
        self._object: ObjectID | None = None
        self._object_type: str | None = None
        self._name: str | None = None
        self._tagger: User | None = None
        self._message = ""

    def _deserialize(self, payload: bytes) -> None:
        self._tagger = None
        headers, body = _parse_headers(payload)
        for field, value in headers:
            if field == _OBJECT_HEADER:
                self._object = value.decode("ascii")
            elif field == _TYPE_HEADER:
                self._object_type = value.decode("ascii")
            elif field == _TAG_HEADER:
                self._name = value.decode("utf-8", "surrogateescape")
            elif field == _TAGGER_HEADER:
                self._tagger = User.parse(value)
        if self._object is None or self._object_type is None:
            raise ValueError("tag has no object")
        self._message = body.decode("utf-8", "surrogateescape")

    def _serialize(self) -> bytes:
        if self._object is None or self._object_type is None or self._name is None:
            raise ValueError("tag requires an object, its type and a name")
        headers = [
            (_OBJECT_HEADER, self._object.encode("ascii")),
            (_TYPE_HEADER, self._object_type.encode("ascii")),
            (_TAG_HEADER, self._name.encode("utf-8", "surrogateescape")),
        ]
        if self._tagger is not None:
            headers.append((_TAGGER_HEADER, self._tagger.format()))
        body = self._message.encode("utf-8", "surrogateescape")
        return _format_headers(headers, body)

    @property
    def object(self) -> tuple[str | None, ObjectID | None]:
        """The object pointed to by this tag, as (type name, id)."""
        return (self._object_type, self._object)

    @object.setter
    def object(self, value: tuple[str, ObjectID]) -> None:
        (self._object_type, self._object) = value
        self._changed()

    @property
    def name(self) -> str | None:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._name = value
        self._changed()

    @property
    def tagger(self) -> User | None:
        return self._tagger

    @tagger.setter
    def tagger(self, value: User | None) -> None:
        self._tagger = value
        self._changed()

    @property
    def message(self) -> str:
        return self._message

    @message.setter
    def message(self, value: str) -> None:
        self._message = value
        self._changed()


def _parse_headers(payload: bytes) -> tuple[list[tuple[bytes, bytes]], bytes]:
    """Split a commit or tag payload into headers and body.

    Continuation lines (starting with a space) are folded into the previous
    header's value.
    """
    headers: list[tuple[bytes, bytes]] = []
    lines = payload.split(b"\n")
    i = 0
    while i < len(lines):
        line = lines[i]
        i += 1
        if line == b"":
            break
        if line.startswith(b" ") and headers:
            field, value = headers[-1]
            headers[-1] = (field, value + b"\n" + line[1:])
            continue
        field, _, value = line.partition(b" ")
        headers.append((field, value))
    return headers, b"\n".join(lines[i:])


def _format_headers(headers: list[tuple[bytes, bytes]], body: bytes) -> bytes:
    chunks = []
    for field, value in headers:
        if b"\n" in field:
            raise ValueError(f"newline in header field {field!r}")
        chunks.append(field + b" " + value.replace(b"\n", b"\n ") + b"\n")
    chunks.append(b"\n")
    chunks.append(body)
    return b"".join(chunks)


OBJECT_CLASSES: tuple[type[ShaFile], ...] = (
    Commit,
    Tree,
    Blob,
    Tag,
)

_TYPE_MAP: dict[str, type[ShaFile]] = {cls.type_name: cls for cls in OBJECT_CLASSES}


def object_class(type_name: str) -> type[ShaFile]:
    """Get the object class corresponding to the given type tag.

    Raises:
      CorruptObject: for type tags outside blob, tree, commit and tag
    """
    try:
        return _TYPE_MAP[type_name]
    except KeyError:
        raise CorruptObject(None, f"unknown object type {type_name!r}") from None
