# repo.py -- For dealing with git repositories.
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

"""Repository access with transactional branch updates.

A Repository keeps the tip commit of one branch and an in-memory working
tree loaded from it. Changes to the working tree become a new commit inside
a transaction::

    repo = Repository("/srv/data", create=True)
    with repo.transaction("add greeting") as txn:
        repo["hello.txt"] = "hello"
    print(txn.commit_result.id)

A transaction holds an exclusive lock on ``refs/heads/<branch>.lock`` from
begin() until finish(). Transactions do not nest: calling begin() again
before the first transaction finished blocks forever on the lock.
"""

__all__ = [
    "OBJECTDIR",
    "Repository",
    "Transaction",
    "get_user_identity",
]

import logging
import os
import time
from collections.abc import Iterator
from contextlib import contextmanager
from types import TracebackType

import filelock

from .client import LOG_FORMAT, Diff, GitClient, VersionControlClient, parse_log
from .errors import (
    DefaultIdentityNotFound,
    GitCommandError,
    LockError,
    NotGitRepository,
    TransactionError,
)
from .file import ensure_dir_exists
from .log_utils import getLogger
from .object_store import DiskObjectStore
from .objects import Blob, Commit, ObjectID, ShaFile, Tree, User
from .refs import BranchRefs, check_ref_format, local_branch_name
from .worktree import WorkingTree

logger = getLogger(__name__)

OBJECTDIR = "objects"
CONTROLDIR = ".git"

_EMPTY_LOG_MESSAGES = (
    "bad default revision 'HEAD'",
    "does not have any commits yet",
)


def _get_default_identity() -> tuple[str, str]:
    import socket

    for name in ("LOGNAME", "USER", "LNAME", "USERNAME"):
        username = os.environ.get(name)
        if username:
            break
    else:
        username = None

    try:
        import pwd
    except ImportError:
        fullname = None
    else:
        try:
            entry = pwd.getpwuid(os.getuid())
        except KeyError:
            fullname = None
        else:
            if getattr(entry, "pw_gecos", None):
                fullname = entry.pw_gecos.split(",")[0]
            else:
                fullname = None
            if username is None:
                username = entry.pw_name
    if not fullname:
        if username is None:
            raise DefaultIdentityNotFound("no username found")
        fullname = username
    email = os.environ.get("EMAIL")
    if email is None:
        if username is None:
            raise DefaultIdentityNotFound("no username found")
        email = f"{username}@{socket.gethostname()}"
    return (fullname, email)


def get_user_identity(
    client: VersionControlClient, kind: str | None = None
) -> User:
    """Determine the identity to use for new commits.

    If kind is set, this first checks
    GIT_${KIND}_NAME and GIT_${KIND}_EMAIL.

    If those variables are not set, then it will fall back
    to reading the user.name and user.email settings through
    the version-control client.

    If that also fails, then it will fall back to using
    the current users' identity as obtained from the host
    system (e.g. the gecos field, $EMAIL, $USER@$(hostname)).

    Args:
      client: Client used to read the configuration
      kind: Optional kind to return identity for,
        usually either "AUTHOR" or "COMMITTER".

    Returns:
      A User without a timestamp
    """
    user: str | None = None
    email: str | None = None
    if kind:
        user = os.environ.get("GIT_" + kind + "_NAME")
        email = os.environ.get("GIT_" + kind + "_EMAIL")
    if not user:
        user = client.config_get("user.name") or None
    if not email:
        email = client.config_get("user.email") or None
    if user is None or email is None:
        default_user, default_email = _get_default_identity()
        if user is None:
            user = default_user
        if email is None:
            email = default_email
    if email.startswith("<") and email.endswith(">"):
        email = email[1:-1]
    return User(user, email)


def _stamp(user: User, now: int, timezone: int) -> User:
    if user.time is not None:
        return user
    return User(user.name, user.email, now, timezone)


class Transaction:
    """Guard for a running transaction.

    Returned by Repository.begin and required by commit, rollback and
    finish. Once finished it can no longer be used.
    """

    def __init__(self, repo: "Repository", lock: filelock.BaseFileLock) -> None:
        self._repo = repo
        self._lock = lock
        self.finished = False
        self.commit_result: Commit | None = None

    @property
    def lock_path(self) -> str:
        return self._lock.lock_file

    def __repr__(self) -> str:
        state = "finished" if self.finished else "active"
        return f"<{self.__class__.__name__} {self.lock_path} ({state})>"


class Repository:
    """A git repository with a single checked out branch.

    Reads are served from the object store and need no lock. Writes go to
    the in-memory working tree (``repo["path"] = data``) and reach disk only
    when a transaction commits.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        branch: str = "master",
        bare: bool = False,
        create: bool = False,
        logger: logging.Logger | None = None,
        client: VersionControlClient | None = None,
        hash_algorithm: str = "sha1",
        loose_compression_level: int = -1,
    ) -> None:
        """Open a repository.

        Args:
          path: Path to the working directory, or the git directory if bare
          branch: Branch to load and commit to
          bare: Whether path is the git directory itself
          create: Create the repository if it does not exist
          logger: Logger for repository messages (default: module logger)
          client: Version-control client (default: GitClient for the repo)
          hash_algorithm: Hash algorithm naming objects
          loose_compression_level: zlib compression level for loose objects
        Raises:
          NotGitRepository: if there is no object database at path and
            create is False
        """
        root = os.fspath(path)
        if len(root) > 1:
            root = root.rstrip(os.sep)
        self.bare = bare
        self.path = root if bare else os.path.join(root, CONTROLDIR)
        self.logger = logger if logger is not None else getLogger(__name__)
        self.client = client if client is not None else GitClient(self.path)
        self._check_branch(branch)
        self._branch = branch

        objects_dir = os.path.join(self.path, OBJECTDIR)
        if not os.path.isdir(objects_dir):
            if not create:
                raise NotGitRepository(f"No git repository was found at {self.path}")
            ensure_dir_exists(self.path)
            self.logger.debug("initialising repository at %s", self.path)
            self.client.init(bare)
            if not os.path.isdir(objects_dir):
                raise NotGitRepository(f"Failed to create a repository at {self.path}")

        self.refs = BranchRefs(self.path)
        self.object_store = DiskObjectStore(
            objects_dir,
            hash_algorithm=hash_algorithm,
            loose_compression_level=loose_compression_level,
        )
        self._head: Commit | None = None
        self._root = WorkingTree(self.object_store)
        self.load()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} for {self.path!r} ({self._branch})>"

    @staticmethod
    def _check_branch(branch: str) -> None:
        if not check_ref_format(local_branch_name(branch)):
            raise ValueError(f"invalid branch name {branch!r}")

    def controldir(self) -> str:
        """Return the path of the control directory."""
        return self.path

    @property
    def branch(self) -> str:
        return self._branch

    def set_branch(self, branch: str) -> None:
        """Switch to another branch, loading its tip."""
        self._check_branch(branch)
        self._branch = branch
        self.load()

    @property
    def head(self) -> Commit | None:
        """Tip commit of the branch as last loaded, or None if unborn."""
        return self._head

    @property
    def root(self) -> WorkingTree:
        """The working tree of the branch."""
        return self._root

    def head_path(self) -> str:
        """Path of the pointer file of the current branch."""
        return self.refs.head_path(self._branch)

    def load(self) -> None:
        """Load the branch tip and a fresh working tree from disk."""
        sha = self.refs.read_head(self._branch)
        if sha:
            self._head = self.object_store.get_commit(sha)
            self._root = WorkingTree(self.object_store, self._head.tree)
        else:
            self._head = None
            self._root = WorkingTree(self.object_store)
        self.logger.debug("reloaded %s, head is %s", self._branch, sha)

    def reload(self) -> None:
        """Drop cached objects and in-memory changes, then load."""
        self.object_store.clear_cache()
        self.load()

    def changed(self) -> bool:
        """Whether the branch moved on disk since it was last loaded."""
        head_id = self._head.id if self._head is not None else None
        return head_id != self.refs.read_head(self._branch)

    def refresh(self) -> None:
        """Reload if another writer moved the branch."""
        if self.changed():
            self.object_store.reload_packs()
            self.reload()

    def close(self) -> None:
        """Close any files opened by this repository."""
        self.object_store.close()

    def __enter__(self) -> "Repository":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def __getitem__(self, path: str) -> "bytes | WorkingTree":
        return self._root[path]

    def __setitem__(self, path: str, value: "bytes | str | WorkingTree") -> None:
        self._root[path] = value

    def __delitem__(self, path: str) -> None:
        del self._root[path]

    def __contains__(self, path: object) -> bool:
        return path in self._root

    def get(self, key: ObjectID) -> ShaFile:
        return self.object_store.get(key)

    def get_tree(self, key: ObjectID) -> Tree:
        return self.object_store.get_tree(key)

    def get_blob(self, key: ObjectID) -> Blob:
        return self.object_store.get_blob(key)

    def get_commit(self, key: ObjectID) -> Commit:
        return self.object_store.get_commit(key)

    def put(self, type_name: str, payload: bytes) -> ObjectID:
        return self.object_store.put(type_name, payload)

    def default_user(self, kind: str | None = None) -> User:
        """Identity stamped on commits when none is given."""
        return get_user_identity(self.client, kind)

    def begin(self) -> Transaction:
        """Start a transaction.

        Blocks until the branch lock is available, then reloads if the
        branch moved on disk.

        Raises:
          LockError: if the lock file can not be created or locked
        """
        lock_path = self.head_path() + ".lock"
        try:
            ensure_dir_exists(os.path.dirname(lock_path))
            lock = filelock.FileLock(lock_path)
            lock.acquire()
        except OSError as exc:
            raise LockError(lock_path, str(exc)) from exc
        txn = Transaction(self, lock)
        self.logger.debug("locked %s", lock_path)
        try:
            self.refresh()
        except BaseException:
            self.finish(txn)
            raise
        return txn

    def _check_transaction(self, txn: Transaction) -> None:
        if txn._repo is not self:
            raise TransactionError(f"{txn!r} belongs to another repository")
        if txn.finished:
            raise TransactionError(f"{txn!r} is already finished")

    def commit(
        self,
        txn: Transaction,
        message: str = "",
        author: User | None = None,
        committer: User | None = None,
    ) -> Commit | None:
        """Write the working tree as a new commit on the branch.

        Args:
          txn: The running transaction
          message: Commit message
          author: Author (default: the configured identity)
          committer: Committer (default: the author)
        Returns: The new commit, or None if nothing was modified
        """
        self._check_transaction(txn)
        if not self._root.modified:
            return None
        if author is None:
            author = self.default_user("AUTHOR")
        if committer is None:
            committer = author
        now = int(time.time())
        timezone = time.localtime(now).tm_gmtoff
        author = _stamp(author, now, timezone)
        committer = _stamp(committer, now, timezone)

        tree_id = self._root.save()
        parents = [self._head.id] if self._head is not None else []
        commit = Commit(
            tree=tree_id,
            parents=parents,
            author=author,
            committer=committer,
            message=message,
        )
        commit_id = self.object_store.add_object(commit)
        self.refs.write_head(self._branch, commit_id)
        self.logger.debug("committed %s on %s", commit_id, self._branch)
        self.reload()
        return commit

    def rollback(self, txn: Transaction) -> None:
        """Discard in-memory changes and reload from disk."""
        self._check_transaction(txn)
        self.logger.debug("rolling back transaction on %s", self._branch)
        self.reload()

    def finish(self, txn: Transaction) -> None:
        """Release the branch lock and remove the lock file.

        Finishing an already finished transaction does nothing.
        """
        if txn._repo is not self:
            raise TransactionError(f"{txn!r} belongs to another repository")
        if txn.finished:
            return
        txn.finished = True
        # Unlink while still locked: a waiter that then locks the old inode
        # sees it has no links left and retries on a fresh file.
        try:
            os.unlink(txn.lock_path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            self.logger.warning("unable to remove %s: %s", txn.lock_path, exc)
        txn._lock.release()
        self.logger.debug("released %s", txn.lock_path)

    @contextmanager
    def transaction(
        self,
        message: str = "",
        author: User | None = None,
        committer: User | None = None,
    ) -> Iterator[Transaction]:
        """Run the body of a with statement as a transaction.

        The working tree is committed when the body completes. Any exception
        rolls back and propagates. The lock is always released; the new
        commit (or None) is available as ``commit_result`` on the guard.
        """
        txn = self.begin()
        try:
            try:
                yield txn
                txn.commit_result = self.commit(txn, message, author, committer)
            except BaseException:
                self.rollback(txn)
                raise
        finally:
            self.finish(txn)

    def log(
        self,
        limit: int = 10,
        start: "ObjectID | Commit | None" = None,
        path: str | None = None,
    ) -> list[Commit]:
        """List commits starting from start (default: the branch tip).

        Returns: Up to limit commits, newest first; [] for an unborn branch
        """
        if isinstance(start, Commit):
            start = start.id
        if start is None:
            if self._head is None:
                return []
            start = self._head.id
        args = [f"--format=tformat:{LOG_FORMAT}", f"-{limit}", start]
        if path is not None:
            args.extend(["--", path])
        try:
            output = self.client.log(args)
        except GitCommandError as exc:
            if any(m in exc.output for m in _EMPTY_LOG_MESSAGES):
                return []
            raise
        return parse_log(output)

    def diff(
        self,
        a: "ObjectID | Commit",
        b: "ObjectID | Commit",
        path: str | None = None,
    ) -> Diff:
        """Return the patch between two commits."""
        from_id = a.id if isinstance(a, Commit) else a
        to_id = b.id if isinstance(b, Commit) else b
        return Diff(from_id, to_id, self.client.diff(from_id, to_id, path))
