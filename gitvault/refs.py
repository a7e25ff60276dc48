# refs.py -- For dealing with git refs
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

"""Ref handling: branch pointers in loose files and packed-refs."""

__all__ = [
    "LOCAL_BRANCH_PREFIX",
    "BranchRefs",
    "check_ref_format",
    "local_branch_name",
    "read_packed_refs",
]

import os
from collections.abc import Iterator
from typing import IO

from .errors import PackedRefsException
from .file import GitFile, ensure_dir_exists
from .log_utils import getLogger
from .objects import ObjectID, valid_hexsha

logger = getLogger(__name__)

LOCAL_BRANCH_PREFIX = "refs/heads/"

# See git-check-ref-format(1)
BAD_REF_CHARS = set(" ~^:?*[")


def check_ref_format(refname: str) -> bool:
    """Check if a refname is correctly formatted.

    Implements all the same rules as git-check-ref-format[1].

    [1]
    http://www.kernel.org/pub/software/scm/git/docs/git-check-ref-format.html

    Args:
      refname: The refname to check
    Returns: True if refname is valid, False otherwise
    """
    if "/." in refname or refname.startswith("."):
        return False
    if "/" not in refname:
        return False
    if ".." in refname:
        return False
    for c in refname:
        if ord(c) < 0o40 or ord(c) == 0o177 or c in BAD_REF_CHARS:
            return False
    if refname[-1] in "/.":
        return False
    if refname.endswith(".lock"):
        return False
    if "@{" in refname:
        return False
    if "\\" in refname:
        return False
    return True


def local_branch_name(name: str) -> str:
    """Build a full branch ref from a short name.

    Args:
      name: Short branch name (e.g., "master") or full ref
    Returns: Full branch ref name (e.g., "refs/heads/master")
    """
    if name.startswith(LOCAL_BRANCH_PREFIX):
        return name
    return LOCAL_BRANCH_PREFIX + name


def _split_ref_line(line: bytes) -> tuple[ObjectID, str]:
    """Split a single ref line into a tuple of SHA1 and name."""
    fields = line.rstrip(b"\n\r").split(b" ")
    if len(fields) != 2:
        raise PackedRefsException(f"invalid ref line {line!r}")
    sha = fields[0].decode("ascii", "replace")
    name = fields[1].decode("utf-8", "surrogateescape")
    if not valid_hexsha(sha):
        raise PackedRefsException(f"Invalid hex sha {sha!r}")
    if not check_ref_format(name):
        raise PackedRefsException(f"invalid ref name {name!r}")
    return (sha, name)


def read_packed_refs(f: IO[bytes]) -> Iterator[tuple[ObjectID, str]]:
    """Read a packed refs file.

    Comment lines and peeled lines (``^<sha>``, naming what the preceding
    annotated tag points at) are skipped.

    Args:
      f: file-like object to read from
    Returns: Iterator over tuples with SHA1s and ref names.
    """
    for line in f:
        if line.startswith(b"#"):
            # Comment
            continue
        if line.startswith(b"^"):
            continue
        if not line.strip():
            continue
        yield _split_ref_line(line)


class BranchRefs:
    """Branch pointers of a repository on disk.

    A branch points at its tip commit either through a loose file
    ``refs/heads/<branch>`` or through a line of ``packed-refs``; the loose
    file takes precedence.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        """Initialize BranchRefs.

        Args:
          path: Path to the git directory
        """
        self.path = os.fspath(path)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.path!r})"

    def head_path(self, branch: str) -> str:
        """Return the path of the loose pointer file for branch."""
        return os.path.join(self.path, *local_branch_name(branch).split("/"))

    def read_loose_ref(self, branch: str) -> ObjectID | None:
        """Read the loose pointer of a branch.

        Returns: The stripped contents of the file, or None if it does not
            exist or is empty.
        """
        try:
            with GitFile(self.head_path(branch), "rb") as f:
                contents = f.read().strip()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return None
        if not contents:
            return None
        return contents.decode("ascii", "replace")

    def get_packed_refs(self) -> dict[str, ObjectID]:
        """Get contents of the packed-refs file.

        Returns: Dictionary mapping ref names to SHA1s

        Note: Will return an empty dictionary when no packed-refs file is
            present.
        """
        path = os.path.join(self.path, "packed-refs")
        try:
            f = GitFile(path, "rb")
        except FileNotFoundError:
            return {}
        with f:
            return {name: sha for sha, name in read_packed_refs(f)}

    def read_head(self, branch: str) -> ObjectID | None:
        """Return the id of the branch tip, or None for an unborn branch."""
        sha = self.read_loose_ref(branch)
        if sha is not None:
            return sha
        return self.get_packed_refs().get(local_branch_name(branch))

    def write_head(self, branch: str, sha: ObjectID) -> None:
        """Point branch at sha.

        The new value is written to a staging file that is renamed over the
        pointer, so readers see either the previous or the new id.
        """
        refname = local_branch_name(branch)
        if not check_ref_format(refname):
            raise ValueError(f"invalid branch name {branch!r}")
        path = self.head_path(branch)
        ensure_dir_exists(os.path.dirname(path))
        # ".lock" is the transaction lock, so stage under another name. Callers
        # hold that lock, so an existing staging file is left over from a crash.
        try:
            os.unlink(path + ".new")
        except FileNotFoundError:
            pass
        else:
            logger.warning("removed stale %s.new", path)
        with GitFile(path, "wb", suffix=".new") as f:
            f.write(sha.encode("ascii"))
        logger.debug("updated %s to %s", refname, sha)
