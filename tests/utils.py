# utils.py -- Test utilities for gitvault
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

"""Utility functions common to gitvault tests.

Packs are never written by gitvault itself, so the helpers here build pack
and index files byte by byte for the reader tests.
"""

import binascii
import os
import struct
import zlib

from gitvault.hash import SHA1, HashAlgorithm
from gitvault.objects import Tree, digest_of
from gitvault.pack import OFS_DELTA, REF_DELTA, TYPE_NUM_NAMES

TYPE_NAME_NUMS = {name: num for num, name in TYPE_NUM_NAMES.items()}


def _encode_size(size: int) -> bytes:
    ret = bytearray()
    c = size & 0x7F
    size >>= 7
    while size:
        ret.append(c | 0x80)
        c = size & 0x7F
        size >>= 7
    ret.append(c)
    return bytes(ret)


def create_delta(base_buf: bytes, target_buf: bytes) -> bytes:
    """Create a delta that rebuilds target_buf from base_buf.

    The common prefix is copied from the base, everything else is inserted.
    """
    out = [_encode_size(len(base_buf)), _encode_size(len(target_buf))]
    prefix = 0
    while (
        prefix < len(base_buf)
        and prefix < len(target_buf)
        and base_buf[prefix] == target_buf[prefix]
    ):
        prefix += 1
    offset = 0
    while offset < prefix:
        size = min(prefix - offset, 0xFFFF)
        cmd = 0x80
        args = bytearray()
        for i in range(4):
            byte = (offset >> (i * 8)) & 0xFF
            if byte:
                cmd |= 1 << i
                args.append(byte)
        for i in range(2):
            byte = (size >> (i * 8)) & 0xFF
            if byte:
                cmd |= 1 << (4 + i)
                args.append(byte)
        out.append(bytes([cmd]) + bytes(args))
        offset += size
    rest = target_buf[prefix:]
    for i in range(0, len(rest), 0x7F):
        chunk = rest[i : i + 0x7F]
        out.append(bytes([len(chunk)]) + chunk)
    return b"".join(out)


def pack_object_header(type_num: int, delta_base, size: int) -> bytes:
    """Create a pack entry header for the given object info."""
    header = []
    c = (type_num << 4) | (size & 15)
    size >>= 4
    while size:
        header.append(c | 0x80)
        c = size & 0x7F
        size >>= 7
    header.append(c)
    if type_num == OFS_DELTA:
        ret = [delta_base & 0x7F]
        delta_base >>= 7
        while delta_base:
            delta_base -= 1
            ret.insert(0, 0x80 | (delta_base & 0x7F))
            delta_base >>= 7
        header.extend(ret)
    elif type_num == REF_DELTA:
        header.extend(binascii.unhexlify(delta_base))
    return bytes(header)


def build_pack(
    path: str,
    objects_spec,
    hash_algorithm: HashAlgorithm = SHA1,
    index_version: int = 2,
    large_offsets: bool = False,
):
    """Write a pack and its index from a concise spec.

    Args:
      path: Path of the ``.pack`` file; the index is written next to it
      objects_spec: A list of (type_num, obj). For non-delta types, obj
        is the bytes of that object's data. For delta types, obj is a tuple
        of (base, data), where base is the index in objects_spec of the
        base object (or a hex id for a REF_DELTA to an object outside the
        pack) and data is the full, non-deltified data for that object.
      hash_algorithm: Hash algorithm naming objects
      index_version: 1 or 2
      large_offsets: Store every offset in the v2 64-bit offset table
    Returns: A list of tuples in the order specified by objects_spec:
        (offset, type name, data, hex id)
    """
    full_objects = {}
    while len(full_objects) < len(objects_spec):
        for i, (type_num, obj) in enumerate(objects_spec):
            if i in full_objects:
                continue
            if type_num not in (OFS_DELTA, REF_DELTA):
                type_name = TYPE_NUM_NAMES[type_num]
                data = obj
            else:
                base, data = obj
                if not isinstance(base, int):
                    # External base: pretend it is a blob.
                    type_name = "blob"
                elif base in full_objects:
                    type_name = full_objects[base][0]
                else:
                    continue
            full_objects[i] = (
                type_name,
                data,
                digest_of(type_name, data, hash_algorithm),
            )

    buf = bytearray(b"PACK" + struct.pack(">LL", 2, len(objects_spec)))
    offsets = {}
    crc32s = {}
    for i, (type_num, obj) in enumerate(objects_spec):
        offset = len(buf)
        if type_num == OFS_DELTA:
            base_index, data = obj
            payload = create_delta(full_objects[base_index][1], data)
            delta_base = offset - offsets[base_index]
        elif type_num == REF_DELTA:
            base_ref, data = obj
            if isinstance(base_ref, int):
                _, base_data, delta_base = full_objects[base_ref]
                payload = create_delta(base_data, data)
            else:
                delta_base = base_ref
                payload = create_delta(b"", data)
        else:
            payload = obj
            delta_base = None
        entry = pack_object_header(type_num, delta_base, len(payload))
        entry += zlib.compress(payload)
        buf += entry
        offsets[i] = offset
        crc32s[i] = zlib.crc32(entry) & 0xFFFFFFFF
    pack_checksum = hash_algorithm.new_hash()
    pack_checksum.update(bytes(buf))
    buf += pack_checksum.digest()
    with open(path, "wb") as f:
        f.write(buf)

    entries = sorted(
        (binascii.unhexlify(full_objects[i][2]), offsets[i], crc32s[i])
        for i in range(len(objects_spec))
    )
    write_pack_index(
        os.path.splitext(path)[0] + ".idx",
        entries,
        pack_checksum.digest(),
        hash_algorithm,
        index_version,
        large_offsets,
    )
    return [
        (offsets[i], full_objects[i][0], full_objects[i][1], full_objects[i][2])
        for i in range(len(objects_spec))
    ]


def write_pack_index(
    path: str,
    entries,
    pack_checksum: bytes,
    hash_algorithm: HashAlgorithm = SHA1,
    version: int = 2,
    large_offsets: bool = False,
) -> None:
    """Write a pack index for sorted (binary id, offset, crc32) entries."""
    fan_out_table = [0] * 256
    for name, _, _ in entries:
        fan_out_table[name[0]] += 1
    for i in range(1, 256):
        fan_out_table[i] += fan_out_table[i - 1]
    if version == 1:
        out = bytearray(struct.pack(">256L", *fan_out_table))
        for name, offset, _ in entries:
            out += struct.pack(">L", offset) + name
    else:
        out = bytearray(b"\377tOc" + struct.pack(">L", 2))
        out += struct.pack(">256L", *fan_out_table)
        for name, _, _ in entries:
            out += name
        for _, _, crc32 in entries:
            out += struct.pack(">L", crc32)
        large = []
        for _, offset, _ in entries:
            if large_offsets:
                out += struct.pack(">L", 0x80000000 | len(large))
                large.append(offset)
            else:
                out += struct.pack(">L", offset)
        for offset in large:
            out += struct.pack(">Q", offset)
    out += pack_checksum
    idx_checksum = hash_algorithm.new_hash()
    idx_checksum.update(bytes(out))
    out += idx_checksum.digest()
    with open(path, "wb") as f:
        f.write(out)


def make_tree(entries) -> Tree:
    """Build a Tree from (name, mode, hex id) tuples."""
    tree = Tree()
    for name, mode, sha in entries:
        tree.add(name, mode, sha)
    return tree


def find_prefix_collision(store, type_name: str, prefix_len: int):
    """Find two payloads whose ids share their first prefix_len characters.

    Returns: list of (payload, hex id) for the two colliding payloads
    """
    seen = {}
    i = 0
    while True:
        payload = b"collision %d" % i
        sha = digest_of(type_name, payload, store.hash_algorithm)
        key = sha[:prefix_len]
        if key in seen:
            return [seen[key], (payload, sha)]
        seen[key] = (payload, sha)
        i += 1
