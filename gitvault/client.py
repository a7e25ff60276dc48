# client.py -- Boundary to the external git executable
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

"""Client for the external version-control executable.

History listing, diffs, configuration lookup and repository creation are
delegated to ``git``. The repository talks to it only through the
VersionControlClient protocol, so tests can substitute a fake.
"""

__all__ = [
    "LOG_FORMAT",
    "Diff",
    "GitClient",
    "VersionControlClient",
    "parse_log",
]

import os
import re
import subprocess
from collections.abc import Sequence
from typing import Protocol

from .errors import GitCommandError
from .log_utils import getLogger
from .objects import Commit, ObjectID, User

logger = getLogger(__name__)

LOG_FORMAT = "%H%n%P%n%T%n%an%n%ae%n%at%n%cn%n%ce%n%ct%n%x00%s%n%b%x00"

_RECORD_SEPARATOR = re.compile("\n*\x00\n*")
_DIFF_HEADER = re.compile(r"^diff --git a/(.*) b/(.*)$", re.MULTILINE)


class VersionControlClient(Protocol):
    """Operations the repository needs from a version-control executable."""

    def log(self, args: Sequence[str]) -> str:
        """Run a history listing and return its raw output."""
        ...

    def diff(self, from_id: str, to_id: str, path: str | None = None) -> str:
        """Return the patch between two revisions."""
        ...

    def config_get(self, key: str) -> str:
        """Return a configuration value, or an empty string if unset."""
        ...

    def init(self, bare: bool) -> None:
        """Create the repository."""
        ...


class GitClient:
    """VersionControlClient running the ``git`` executable.

    Every command runs with ``GIT_DIR`` pointing at the repository, and
    stderr merged into stdout.
    """

    def __init__(
        self, git_dir: str | os.PathLike[str], executable: str = "git"
    ) -> None:
        self.git_dir = os.fspath(git_dir)
        self.executable = executable

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.git_dir!r})"

    def run(self, *args: str, cwd: str | None = None) -> str:
        """Run a git subcommand.

        Returns: Output of the command, without trailing newlines. Exit
            status 1 with no output (e.g. an unset config key) yields "".
        Raises:
          GitCommandError: for any other non-zero exit status
        """
        cmd = [self.executable, *args]
        env = dict(os.environ)
        env["GIT_DIR"] = self.git_dir
        logger.debug("running %s", " ".join(cmd))
        result = subprocess.run(
            cmd,
            cwd=cwd,
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
        out = result.stdout.decode("utf-8", "replace").rstrip("\n")
        if result.returncode != 0:
            if result.returncode == 1 and out == "":
                return ""
            raise GitCommandError(cmd, result.returncode, out)
        return out

    def log(self, args: Sequence[str]) -> str:
        return self.run("log", *args)

    def diff(self, from_id: str, to_id: str, path: str | None = None) -> str:
        args = ["diff", "--full-index", from_id, to_id, "--"]
        if path is not None:
            args.append(path)
        return self.run(*args)

    def config_get(self, key: str) -> str:
        return self.run("config", "--get", key).strip()

    def init(self, bare: bool) -> None:
        if bare:
            self.run("init", "--bare", cwd=self.git_dir)
        else:
            self.run("init", cwd=os.path.dirname(self.git_dir.rstrip(os.sep)))


def parse_log(output: str) -> list[Commit]:
    """Parse ``git log`` output produced with LOG_FORMAT.

    The returned commits carry the ids reported by git. Timezones are not
    part of the format and are left at UTC.
    """
    parts = _RECORD_SEPARATOR.split(output)
    if parts and parts[-1] == "":
        parts.pop()
    commits = []
    for i in range(0, len(parts) - 1, 2):
        fields = parts[i].split("\n")
        if len(fields) < 9:
            raise ValueError(f"malformed log record {parts[i]!r}")
        commit = Commit(
            tree=fields[2],
            parents=fields[1].split(),
            author=User(fields[3], fields[4], int(fields[5])),
            committer=User(fields[6], fields[7], int(fields[8])),
            message=parts[i + 1].strip(),
        )
        commit._id = fields[0]
        commits.append(commit)
    return commits


class Diff:
    """A patch between two revisions."""

    def __init__(
        self, from_id: ObjectID | None, to_id: ObjectID | None, patch: str
    ) -> None:
        self.from_id = from_id
        self.to_id = to_id
        self.patch = patch

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.from_id!r}, {self.to_id!r})"

    def __str__(self) -> str:
        return self.patch

    @property
    def paths(self) -> list[str]:
        """Paths touched by the patch, in patch order."""
        return [m.group(2) for m in _DIFF_HEADER.finditer(self.patch)]
