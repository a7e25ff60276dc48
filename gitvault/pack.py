# pack.py -- Reading git pack archives
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

"""Classes for reading packed objects.

A pack is a compact file holding many objects. It comes in two parts: the
``.pack`` file with the (compressed, possibly delta-encoded) object data,
and the ``.idx`` file mapping object ids to offsets in the ``.pack`` file.

Each entry in the ``.pack`` file starts with a variable length header. If
the MSB of a header byte is set, the next byte is still part of the header.
The first byte carries the type in bits 4-6 and the low four bits of the
uncompressed size; every following byte contributes seven more size bits.
Delta entries then name their base: ``OFS_DELTA`` as a negative offset into
the same pack, ``REF_DELTA`` by object id. The zlib compressed body follows.

Packs are only ever read here. They are immutable once written, so a Pack
can be shared between threads.
"""

__all__ = [
    "DELTA_TYPES",
    "OFS_DELTA",
    "REF_DELTA",
    "TYPE_NUM_NAMES",
    "FilePackIndex",
    "Pack",
    "PackData",
    "PackIndex1",
    "PackIndex2",
    "UnpackedObject",
    "apply_delta",
    "bisect_find_sha",
    "load_pack_index",
    "load_pack_index_file",
    "read_pack_header",
    "take_msb_bytes",
    "unpack_object",
]

import binascii
import os
import struct
import sys
import zlib
from collections.abc import Callable, Iterator
from io import UnsupportedOperation
from struct import unpack_from
from types import TracebackType
from typing import IO, Any

try:
    import mmap
except ImportError:
    has_mmap = False
else:
    has_mmap = True

# For some reason the above try, except fails to set has_mmap = False for plan9
if sys.platform == "Plan9":
    has_mmap = False

from .errors import ApplyDeltaError, ChecksumMismatch, CorruptObject, UnresolvedDeltas
from .hash import DEFAULT_HASH_ALGORITHM, HashAlgorithm
from .log_utils import getLogger
from .objects import ObjectID

logger = getLogger(__name__)

OFS_DELTA = 6
REF_DELTA = 7

DELTA_TYPES = (OFS_DELTA, REF_DELTA)

TYPE_NUM_NAMES = {
    1: "commit",
    2: "tree",
    3: "blob",
    4: "tag",
}

PACK_HEADER_SIZE = 12

_ZLIB_BUFSIZE = 65536


def take_msb_bytes(contents: bytes, offset: int) -> tuple[list[int], int]:
    """Read bytes marked with most significant bit.

    Args:
      contents: Buffer to read from
      offset: Offset of the first byte
    Returns:
      Tuple of (list of bytes read, offset after the last byte)
    """
    ret: list[int] = []
    while len(ret) == 0 or ret[-1] & 0x80:
        if offset >= len(contents):
            raise CorruptObject(None, "pack entry header runs past end of pack")
        ret.append(contents[offset])
        offset += 1
    return ret, offset


def _load_file_contents(f: IO[bytes], size: int | None = None) -> tuple[Any, int]:
    """Load contents from a file, preferring mmap when possible.

    Args:
      f: File-like object to load
      size: Expected size, or None to determine from file
    Returns: Tuple of (contents, size)
    """
    try:
        fd = f.fileno()
    except (UnsupportedOperation, AttributeError):
        fd = None
    if fd is not None:
        if size is None:
            size = os.fstat(fd).st_size
        if has_mmap and size > 0:
            try:
                contents = mmap.mmap(fd, size, access=mmap.ACCESS_READ)
            except (OSError, ValueError):
                # Can't mmap - perhaps a socket or invalid file descriptor
                pass
            else:
                return contents, size
    contents_bytes = f.read()
    return contents_bytes, len(contents_bytes)


def bisect_find_sha(
    start: int, end: int, sha: bytes, unpack_name: Callable[[int], bytes]
) -> int | None:
    """Find a SHA in a data blob with sorted SHAs.

    Args:
      start: Start index of range to search
      end: End index of range to search (exclusive)
      sha: Sha to find
      unpack_name: Callback to retrieve SHA by index
    Returns: Index of the SHA, or None if it wasn't found
    """
    end -= 1
    while start <= end:
        i = (start + end) // 2
        file_sha = unpack_name(i)
        if file_sha < sha:
            start = i + 1
        elif file_sha > sha:
            end = i - 1
        else:
            return i
    return None


class FilePackIndex:
    """Pack index that is based on a file.

    The first 256 four byte groups form the fan-out table, indexed by the
    first byte of the object id. The value of each group is the number of
    objects whose id starts with a byte less than or equal to the index, so
    the entries sharing a first byte are found between two neighbouring
    groups and then bisected, since ids are sorted within the table.
    """

    version: int
    _fan_out_table: list[int]

    def __init__(
        self,
        filename: str | os.PathLike[str],
        hash_algorithm: HashAlgorithm,
        file: IO[bytes] | None = None,
        contents: Any = None,  # noqa: ANN401
        size: int | None = None,
    ) -> None:
        self._filename = filename
        self.hash_algorithm = hash_algorithm
        self.hash_size = hash_algorithm.oid_length
        if file is None:
            self._file = open(filename, "rb")
        else:
            self._file = file
        if contents is None:
            self._contents, self._size = _load_file_contents(self._file, size)
        else:
            self._contents = contents
            self._size = size if size is not None else len(contents)

    @property
    def path(self) -> str:
        """Return the path to this index file."""
        return os.fspath(self._filename)

    def close(self) -> None:
        """Close the underlying file and any mmap."""
        self._file.close()
        close_fn = getattr(self._contents, "close", None)
        if close_fn is not None:
            close_fn()

    def __len__(self) -> int:
        """Return the number of entries in this pack index."""
        return self._fan_out_table[-1]

    def _unpack_name(self, i: int) -> bytes:
        raise NotImplementedError(self._unpack_name)

    def _unpack_offset(self, i: int) -> int:
        raise NotImplementedError(self._unpack_offset)

    def _read_fan_out_table(self, start_offset: int) -> list[int]:
        if self._size < start_offset + 0x100 * 4:
            raise CorruptObject(None, f"{self.path} is too short for a pack index")
        return list(struct.unpack_from(">256L", self._contents, start_offset))

    def _check_size(self, table_end: int) -> None:
        # Trailer: checksum of the pack followed by checksum of the index.
        if self._size < table_end + 2 * self.hash_size:
            raise CorruptObject(None, f"{self.path} is truncated")

    def iterentries(self) -> Iterator[tuple[ObjectID, int]]:
        """Iterate over the entries in this pack index.

        Returns: iterator over tuples with hex object id and offset in the
            pack file.
        """
        for i in range(len(self)):
            name = binascii.hexlify(self._unpack_name(i)).decode("ascii")
            yield name, self._unpack_offset(i)

    def object_offset(self, sha: ObjectID) -> int:
        """Return the offset in to the corresponding packfile for the object.

        Raises:
          KeyError: if the pack does not contain the object
        """
        raw = binascii.unhexlify(sha)
        idx = raw[0]
        start = 0 if idx == 0 else self._fan_out_table[idx - 1]
        end = self._fan_out_table[idx]
        i = bisect_find_sha(start, end, raw, self._unpack_name)
        if i is None:
            raise KeyError(sha)
        return self._unpack_offset(i)

    def get_pack_checksum(self) -> bytes:
        """Return the checksum stored for the corresponding packfile."""
        return bytes(self._contents[-2 * self.hash_size : -self.hash_size])

    def get_stored_checksum(self) -> bytes:
        """Return the checksum stored for this index."""
        return bytes(self._contents[-self.hash_size :])

    def calculate_checksum(self) -> bytes:
        """Calculate the checksum over this pack index."""
        h = self.hash_algorithm.new_hash()
        h.update(self._contents[: -self.hash_size])
        return h.digest()

    def check(self) -> None:
        """Check that the stored checksum matches the actual checksum."""
        actual = self.calculate_checksum()
        stored = self.get_stored_checksum()
        if actual != stored:
            raise ChecksumMismatch(stored, actual, f"index {self.path}")


class PackIndex1(FilePackIndex):
    """Version 1 Pack Index file."""

    def __init__(
        self,
        filename: str | os.PathLike[str],
        hash_algorithm: HashAlgorithm,
        file: IO[bytes] | None = None,
        contents: Any = None,  # noqa: ANN401
        size: int | None = None,
    ) -> None:
        super().__init__(filename, hash_algorithm, file, contents, size)
        self.version = 1
        self._fan_out_table = self._read_fan_out_table(0)
        self._entry_size = 4 + self.hash_size
        self._check_size(0x100 * 4 + len(self) * self._entry_size)

    def _unpack_name(self, i: int) -> bytes:
        offset = (0x100 * 4) + (i * self._entry_size) + 4
        return bytes(self._contents[offset : offset + self.hash_size])

    def _unpack_offset(self, i: int) -> int:
        offset = (0x100 * 4) + (i * self._entry_size)
        return int(unpack_from(">L", self._contents, offset)[0])


class PackIndex2(FilePackIndex):
    """Version 2 Pack Index file."""

    def __init__(
        self,
        filename: str | os.PathLike[str],
        hash_algorithm: HashAlgorithm,
        file: IO[bytes] | None = None,
        contents: Any = None,  # noqa: ANN401
        size: int | None = None,
    ) -> None:
        super().__init__(filename, hash_algorithm, file, contents, size)
        if self._contents[:4] != b"\377tOc":
            raise CorruptObject(None, f"{self.path} is not a v2 pack index file")
        (self.version,) = unpack_from(b">L", self._contents, 4)
        if self.version != 2:
            raise CorruptObject(None, f"{self.path}: version was {self.version}")
        self._fan_out_table = self._read_fan_out_table(8)
        self._name_table_offset = 8 + 0x100 * 4
        self._crc32_table_offset = self._name_table_offset + self.hash_size * len(self)
        self._pack_offset_table_offset = self._crc32_table_offset + 4 * len(self)
        self._pack_offset_largetable_offset = self._pack_offset_table_offset + 4 * len(
            self
        )
        self._check_size(self._pack_offset_largetable_offset)

    def _unpack_name(self, i: int) -> bytes:
        offset = self._name_table_offset + i * self.hash_size
        return bytes(self._contents[offset : offset + self.hash_size])

    def _unpack_offset(self, i: int) -> int:
        offset = self._pack_offset_table_offset + i * 4
        offset_val = int(unpack_from(">L", self._contents, offset)[0])
        if offset_val & (2**31):
            offset = (
                self._pack_offset_largetable_offset + (offset_val & (2**31 - 1)) * 8
            )
            if offset + 8 > self._size - 2 * self.hash_size:
                raise CorruptObject(None, f"{self.path}: large offset out of range")
            offset_val = int(unpack_from(">Q", self._contents, offset)[0])
        return offset_val

    def crc32_checksum(self, i: int) -> int:
        """Return the CRC32 of the compressed data of the i-th entry."""
        return int(
            unpack_from(">L", self._contents, self._crc32_table_offset + i * 4)[0]
        )


def load_pack_index_file(
    path: str | os.PathLike[str],
    f: IO[bytes],
    hash_algorithm: HashAlgorithm = DEFAULT_HASH_ALGORITHM,
) -> FilePackIndex:
    """Load an index file from a file-like object.

    Args:
      path: Path for the index file
      f: File-like object
      hash_algorithm: Hash algorithm naming objects in the repository
    Returns: A pack index loaded from the given file
    """
    contents, size = _load_file_contents(f)
    if contents[:4] == b"\377tOc":
        version = struct.unpack(b">L", contents[4:8])[0]
        if version == 2:
            return PackIndex2(
                path, hash_algorithm, file=f, contents=contents, size=size
            )
        raise CorruptObject(None, f"Unknown pack index format {version}")
    return PackIndex1(path, hash_algorithm, file=f, contents=contents, size=size)


def load_pack_index(
    path: str | os.PathLike[str],
    hash_algorithm: HashAlgorithm = DEFAULT_HASH_ALGORITHM,
) -> FilePackIndex:
    """Load an index file by path."""
    f = open(path, "rb")
    try:
        return load_pack_index_file(path, f, hash_algorithm)
    except BaseException:
        f.close()
        raise


def read_pack_header(contents: bytes) -> tuple[int, int]:
    """Read the header of a pack file.

    Returns: Tuple of (pack version, number of objects)
    Raises:
      CorruptObject: if the header is missing or invalid
    """
    header = bytes(contents[:PACK_HEADER_SIZE])
    if len(header) < PACK_HEADER_SIZE:
        raise CorruptObject(None, "file too short to contain pack")
    if header[:4] != b"PACK":
        raise CorruptObject(None, f"Invalid pack header {header[:4]!r}")
    (version,) = unpack_from(b">L", header, 4)
    if version not in (2, 3):
        raise CorruptObject(None, f"Unsupported pack version {version}")
    (num_objects,) = unpack_from(b">L", header, 8)
    return (version, num_objects)


class UnpackedObject:
    """An entry of a pack, decompressed but not resolved.

    For delta entries, ``delta_base`` is the absolute offset of the base
    (OFS_DELTA) or its hex id (REF_DELTA), and ``data`` holds the delta
    instructions.
    """

    __slots__ = ("data", "delta_base", "end", "offset", "pack_type_num")

    def __init__(
        self,
        pack_type_num: int,
        delta_base: int | ObjectID | None,
        data: bytes,
        offset: int,
        end: int,
    ) -> None:
        self.pack_type_num = pack_type_num
        self.delta_base = delta_base
        self.data = data
        self.offset = offset
        self.end = end

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(type={self.pack_type_num}, "
            f"offset={self.offset}, delta_base={self.delta_base!r})"
        )


def _read_zlib(
    contents: bytes, offset: int, expected: int, limit: int
) -> tuple[bytes, int]:
    """Inflate the zlib stream starting at offset.

    Returns: Tuple of (decompressed data, offset just past the stream)
    """
    decomp_obj = zlib.decompressobj()
    chunks = []
    pos = offset
    try:
        while not decomp_obj.eof:
            if pos >= limit:
                raise CorruptObject(None, "EOF before end of zlib stream")
            add = contents[pos : min(pos + _ZLIB_BUFSIZE, limit)]
            pos += len(add)
            chunks.append(decomp_obj.decompress(add))
    except zlib.error as exc:
        raise CorruptObject(None, f"invalid zlib stream at offset {offset}") from exc
    pos -= len(decomp_obj.unused_data)
    data = b"".join(chunks)
    if len(data) != expected:
        raise CorruptObject(
            None,
            f"decompressed data does not match expected size at offset {offset}",
        )
    return data, pos


def unpack_object(
    contents: bytes,
    offset: int,
    hash_algorithm: HashAlgorithm = DEFAULT_HASH_ALGORITHM,
    limit: int | None = None,
) -> UnpackedObject:
    """Unpack the pack entry starting at offset.

    Args:
      contents: The pack file contents
      offset: Offset of the entry header
      hash_algorithm: Hash algorithm, determines the size of REF_DELTA bases
      limit: Offset where object data ends (start of the trailing checksum)
    Returns: An UnpackedObject
    Raises:
      CorruptObject: if the entry can not be decoded
    """
    if limit is None:
        limit = len(contents)
    if offset < PACK_HEADER_SIZE or offset >= limit:
        raise CorruptObject(None, f"offset {offset} is outside the pack data")
    raw, pos = take_msb_bytes(contents, offset)
    type_num = (raw[0] >> 4) & 0x07
    size = raw[0] & 0x0F
    for i, byte in enumerate(raw[1:]):
        size += (byte & 0x7F) << ((i * 7) + 4)

    delta_base: int | ObjectID | None
    if type_num == OFS_DELTA:
        raw, pos = take_msb_bytes(contents, pos)
        delta_base_offset = raw[0] & 0x7F
        for byte in raw[1:]:
            delta_base_offset += 1
            delta_base_offset <<= 7
            delta_base_offset += byte & 0x7F
        if delta_base_offset <= 0 or delta_base_offset > offset - PACK_HEADER_SIZE:
            raise CorruptObject(
                None, f"invalid delta base offset {delta_base_offset} at {offset}"
            )
        delta_base = offset - delta_base_offset
    elif type_num == REF_DELTA:
        hash_size = hash_algorithm.oid_length
        if pos + hash_size > limit:
            raise CorruptObject(None, f"truncated delta base id at {offset}")
        delta_base = binascii.hexlify(contents[pos : pos + hash_size]).decode("ascii")
        pos += hash_size
    elif type_num in TYPE_NUM_NAMES:
        delta_base = None
    else:
        raise CorruptObject(None, f"unknown pack object type {type_num} at {offset}")

    data, end = _read_zlib(contents, pos, size, limit)
    return UnpackedObject(type_num, delta_base, data, offset, end)


def _delta_header_size(delta: bytes, index: int) -> tuple[int, int]:
    size = 0
    i = 0
    while True:
        if index >= len(delta):
            raise ApplyDeltaError("truncated delta header")
        cmd = delta[index]
        index += 1
        size |= (cmd & ~0x80) << i
        i += 7
        if not cmd & 0x80:
            break
    return size, index


def apply_delta(src_buf: bytes, delta: bytes) -> bytes:
    """Based on the similar function in git's patch-delta.c.

    Args:
      src_buf: Source buffer
      delta: Delta instructions
    Returns: The reconstructed target buffer
    Raises:
      ApplyDeltaError: if the delta does not apply to src_buf
    """
    out = []
    index = 0
    delta_length = len(delta)

    src_size, index = _delta_header_size(delta, index)
    dest_size, index = _delta_header_size(delta, index)
    if src_size != len(src_buf):
        raise ApplyDeltaError(
            f"Unexpected source buffer size: {src_size} vs {len(src_buf)}"
        )
    while index < delta_length:
        cmd = delta[index]
        index += 1
        if cmd & 0x80:
            cp_off = 0
            for i in range(4):
                if cmd & (1 << i):
                    if index >= delta_length:
                        raise ApplyDeltaError("truncated copy instruction")
                    cp_off |= delta[index] << (i * 8)
                    index += 1
            cp_size = 0
            for i in range(3):
                if cmd & (1 << (4 + i)):
                    if index >= delta_length:
                        raise ApplyDeltaError("truncated copy instruction")
                    cp_size |= delta[index] << (i * 8)
                    index += 1
            if cp_size == 0:
                cp_size = 0x10000
            if cp_off + cp_size > src_size or cp_size > dest_size:
                raise ApplyDeltaError("copy instruction out of range")
            out.append(src_buf[cp_off : cp_off + cp_size])
        elif cmd != 0:
            if index + cmd > delta_length:
                raise ApplyDeltaError("truncated insert instruction")
            out.append(delta[index : index + cmd])
            index += cmd
        else:
            raise ApplyDeltaError("Invalid opcode 0")

    result = b"".join(out)
    if dest_size != len(result):
        raise ApplyDeltaError("dest size incorrect")
    return result


class PackData:
    """The data contained in a packfile.

    The whole file is mapped into memory (where mmap is available) and
    entries are decoded straight from the mapping, so no file position is
    shared between readers.
    """

    def __init__(
        self,
        filename: str | os.PathLike[str],
        hash_algorithm: HashAlgorithm = DEFAULT_HASH_ALGORITHM,
        file: IO[bytes] | None = None,
    ) -> None:
        self._filename = filename
        self.hash_algorithm = hash_algorithm
        if file is None:
            self._file = open(filename, "rb")
        else:
            self._file = file
        try:
            self._contents, self._size = _load_file_contents(self._file)
            (self.version, self._num_objects) = read_pack_header(self._contents)
            if self._size < PACK_HEADER_SIZE + hash_algorithm.oid_length:
                raise CorruptObject(None, f"{filename} is too small for a packfile")
        except BaseException:
            self.close()
            raise

    @property
    def filename(self) -> str:
        """Base filename of the pack file."""
        return os.path.basename(os.fspath(self._filename))

    @property
    def path(self) -> str:
        return os.fspath(self._filename)

    def close(self) -> None:
        """Close the underlying pack file."""
        close_fn = getattr(getattr(self, "_contents", None), "close", None)
        if close_fn is not None:
            close_fn()
        self._file.close()

    def __len__(self) -> int:
        """Returns the number of objects in this pack."""
        return self._num_objects

    def _data_end(self) -> int:
        return self._size - self.hash_algorithm.oid_length

    def get_stored_checksum(self) -> bytes:
        """Return the expected checksum stored in this pack."""
        return bytes(self._contents[self._data_end() :])

    def calculate_checksum(self) -> bytes:
        """Calculate the checksum over the pack contents."""
        h = self.hash_algorithm.new_hash()
        h.update(self._contents[: self._data_end()])
        return h.digest()

    def check(self) -> None:
        """Check the consistency of this pack."""
        actual = self.calculate_checksum()
        stored = self.get_stored_checksum()
        if actual != stored:
            raise ChecksumMismatch(stored, actual, f"pack {self.path}")

    def get_unpacked_object_at(self, offset: int) -> UnpackedObject:
        """Given offset in the packfile return an UnpackedObject."""
        return unpack_object(
            self._contents, offset, self.hash_algorithm, limit=self._data_end()
        )


class Pack:
    """A pack archive: a ``.pack`` file together with its ``.idx``."""

    def __init__(
        self,
        path: str | os.PathLike[str],
        hash_algorithm: HashAlgorithm = DEFAULT_HASH_ALGORITHM,
    ) -> None:
        """Open a pack.

        Args:
          path: Path of the ``.pack`` file; the index is expected next to it
            with an ``.idx`` extension.
          hash_algorithm: Hash algorithm naming objects in the repository
        """
        path = os.fspath(path)
        self._basename = path[: -len(".pack")] if path.endswith(".pack") else path
        self.hash_algorithm = hash_algorithm
        self._data_path = self._basename + ".pack"
        self._idx_path = self._basename + ".idx"
        self.index = load_pack_index(self._idx_path, hash_algorithm)
        try:
            self.data = PackData(self._data_path, hash_algorithm)
        except BaseException:
            self.index.close()
            raise
        if len(self.index) != len(self.data):
            logger.warning(
                "pack %s has %d objects but its index lists %d",
                self._data_path,
                len(self.data),
                len(self.index),
            )

    @property
    def name(self) -> str:
        """Base name of the pack (without directory and extension)."""
        return os.path.basename(self._basename)

    def close(self) -> None:
        self.data.close()
        self.index.close()

    def __enter__(self) -> "Pack":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def __len__(self) -> int:
        """Number of entries in this pack."""
        return len(self.index)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._basename!r})"

    def __contains__(self, sha: ObjectID) -> bool:
        """Check whether this pack contains a particular object."""
        try:
            self.index.object_offset(sha)
            return True
        except KeyError:
            return False

    def iterentries(self) -> Iterator[tuple[ObjectID, int]]:
        """Yield (hex id, offset) for every object in the pack."""
        return self.index.iterentries()

    each_object = iterentries

    def check(self) -> None:
        """Verify the checksums of the pack and its index."""
        self.index.check()
        self.data.check()
        stored = self.data.get_stored_checksum()
        if self.index.get_pack_checksum() != stored:
            raise ChecksumMismatch(
                stored, self.index.get_pack_checksum(), "index does not match pack"
            )

    def get_object(self, offset: int) -> tuple[bytes, str]:
        """Decode the object stored at offset, resolving any delta chain.

        Returns: Tuple of (payload, type name)
        Raises:
          CorruptObject: if the entry or one of its bases can not be decoded,
            or a REF_DELTA base is not in this pack
        """
        unpacked = self.data.get_unpacked_object_at(offset)
        delta_stack = []
        seen = {offset}
        while unpacked.pack_type_num in DELTA_TYPES:
            delta_stack.append(unpacked.data)
            if unpacked.pack_type_num == OFS_DELTA:
                assert isinstance(unpacked.delta_base, int)
                base_offset = unpacked.delta_base
            else:
                assert isinstance(unpacked.delta_base, str)
                try:
                    base_offset = self.index.object_offset(unpacked.delta_base)
                except KeyError:
                    raise UnresolvedDeltas([unpacked.delta_base]) from None
            if base_offset in seen:
                raise CorruptObject(None, f"delta chain loop at offset {base_offset}")
            seen.add(base_offset)
            unpacked = self.data.get_unpacked_object_at(base_offset)

        payload = unpacked.data
        for delta in reversed(delta_stack):
            payload = apply_delta(payload, delta)
        return payload, TYPE_NUM_NAMES[unpacked.pack_type_num]

    def get_raw(self, sha: ObjectID) -> tuple[bytes, str]:
        """Decode an object by id.

        Raises:
          KeyError: if the object is not in this pack
        """
        return self.get_object(self.index.object_offset(sha))
