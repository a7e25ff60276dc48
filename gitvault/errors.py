# errors.py -- errors for gitvault
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

"""gitvault-related exception classes."""

__all__ = [
    "AmbiguousObjectId",
    "ApplyDeltaError",
    "ChecksumMismatch",
    "CorruptObject",
    "DefaultIdentityNotFound",
    "FileFormatException",
    "GitCommandError",
    "LockError",
    "NotBlobError",
    "NotCommitError",
    "NotGitRepository",
    "NotTagError",
    "NotTreeError",
    "ObjectFormatException",
    "ObjectNotFound",
    "PackedRefsException",
    "TransactionError",
    "UnresolvedDeltas",
    "WrongObjectException",
]

import binascii
from collections.abc import Sequence


class ObjectNotFound(KeyError):
    """An object is neither cached, stored loose nor packed."""

    def __init__(self, sha: str | None, reason: str | None = None) -> None:
        """Initialize an ObjectNotFound exception.

        Args:
          sha: The (possibly abbreviated) id that was looked up.
          reason: Optional detail on why the lookup failed.
        """
        self.sha = sha
        self.reason = reason
        KeyError.__init__(self, sha)

    def __str__(self) -> str:
        message = f"{self.sha} is not in the object store"
        if self.reason:
            message += f": {self.reason}"
        return message


class AmbiguousObjectId(Exception):
    """An abbreviated id matches more than one object."""

    def __init__(self, prefix: str, candidates: Sequence[str] = ()) -> None:
        """Initialize an AmbiguousObjectId exception.

        Args:
          prefix: The abbreviated id.
          candidates: Full ids sharing the prefix, where known.
        """
        self.prefix = prefix
        self.candidates = sorted(candidates)
        message = f"short object id {prefix} is ambiguous"
        if self.candidates:
            message += f" (candidates: {', '.join(self.candidates)})"
        Exception.__init__(self, message)


class FileFormatException(Exception):
    """Base class for exceptions relating to reading git file formats."""


class ObjectFormatException(FileFormatException):
    """Indicates an error parsing an object."""


class CorruptObject(ObjectFormatException):
    """Stored data failed framing, checksum or length validation."""

    def __init__(self, sha: str | None, reason: str) -> None:
        """Initialize a CorruptObject exception.

        Args:
          sha: Id of the object (or None when reading by offset).
          reason: Description of what failed to validate.
        """
        self.sha = sha
        self.reason = reason
        if sha is None:
            Exception.__init__(self, reason)
        else:
            Exception.__init__(self, f"{reason}: {sha}")


class ChecksumMismatch(CorruptObject):
    """A checksum didn't match the expected contents."""

    def __init__(
        self,
        expected: bytes | str,
        got: bytes | str,
        extra: str | None = None,
    ) -> None:
        """Initialize a ChecksumMismatch exception.

        Args:
          expected: The expected checksum value (binary or hex).
          got: The actual checksum value (binary or hex).
          extra: Optional additional error information.
        """
        if isinstance(expected, bytes):
            expected = binascii.hexlify(expected).decode("ascii")
        if isinstance(got, bytes):
            got = binascii.hexlify(got).decode("ascii")
        self.expected = expected
        self.got = got
        self.extra = extra
        message = f"Checksum mismatch: Expected {expected}, got {got}"
        if extra is not None:
            message += f"; {extra}"
        CorruptObject.__init__(self, None, message)


class ApplyDeltaError(CorruptObject):
    """Indicates that applying a delta failed."""

    def __init__(self, reason: str) -> None:
        CorruptObject.__init__(self, None, reason)


class UnresolvedDeltas(CorruptObject):
    """Delta bases could not be found inside the pack."""

    def __init__(self, shas: Sequence[str]) -> None:
        """Initialize an UnresolvedDeltas exception.

        Args:
          shas: Hex ids of the missing delta bases.
        """
        self.shas = list(shas)
        CorruptObject.__init__(
            self, None, f"unresolved delta base(s): {', '.join(self.shas)}"
        )


class WrongObjectException(Exception):
    """Baseclass for all the _ is not a _ exceptions on objects.

    Do not instantiate directly.

    Subclasses should define a type_name attribute that indicates what
    was expected if they were raised.
    """

    type_name: str

    def __init__(self, sha: str, actual: str | None = None) -> None:
        """Initialize a WrongObjectException.

        Args:
          sha: The id of the object that was not of the expected type.
          actual: The type tag the object actually has.
        """
        self.sha = sha
        self.actual = actual
        message = f"{sha} is not a {self.type_name}"
        if actual is not None:
            message += f" (got {actual})"
        Exception.__init__(self, message)


class NotCommitError(WrongObjectException):
    """Indicates that the sha requested does not point to a commit."""

    type_name = "commit"


class NotTreeError(WrongObjectException):
    """Indicates that the sha requested does not point to a tree."""

    type_name = "tree"


class NotTagError(WrongObjectException):
    """Indicates that the sha requested does not point to a tag."""

    type_name = "tag"


class NotBlobError(WrongObjectException):
    """Indicates that the sha requested does not point to a blob."""

    type_name = "blob"


class PackedRefsException(FileFormatException):
    """Indicates an error parsing a packed-refs file."""


class NotGitRepository(Exception):
    """Indicates that no Git repository was found."""


class LockError(Exception):
    """The branch lock file could not be created or locked."""

    def __init__(self, lockfilename: str, reason: str) -> None:
        self.lockfilename = lockfilename
        Exception.__init__(self, f"unable to lock {lockfilename}: {reason}")


class TransactionError(Exception):
    """A transaction guard was used outside of its lifetime."""


class DefaultIdentityNotFound(Exception):
    """Default identity could not be determined from the host system."""


class GitCommandError(Exception):
    """The git executable exited with a failure status."""

    def __init__(self, args: Sequence[str], returncode: int, output: str) -> None:
        """Initialize a GitCommandError.

        Args:
          args: The command line that was run.
          returncode: Exit status of the process.
          output: Combined stdout and stderr of the process.
        """
        self.command = list(args)
        self.returncode = returncode
        self.output = output
        Exception.__init__(
            self, f"{' '.join(self.command)} (exit status {returncode}): {output}"
        )
