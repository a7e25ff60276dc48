# __init__.py -- The tests for gitvault
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

"""Tests for gitvault."""

__all__ = [
    "SkipTest",
    "TestCase",
]

import os
import shutil
import tempfile
from unittest import SkipTest
from unittest import TestCase as _TestCase


class TestCase(_TestCase):
    """Base class for gitvault tests.

    HOME and the identity environment variables are isolated so that the
    user's git configuration never leaks into a test.
    """

    _isolated_env = (
        "HOME",
        "EMAIL",
        "GIT_AUTHOR_NAME",
        "GIT_AUTHOR_EMAIL",
        "GIT_COMMITTER_NAME",
        "GIT_COMMITTER_EMAIL",
        "GIT_TRACE",
        "GITVAULT_TRACE",
    )

    def setUp(self) -> None:
        super().setUp()
        self._old_env = {name: os.environ.get(name) for name in self._isolated_env}
        for name in self._isolated_env:
            os.environ.pop(name, None)
        os.environ["HOME"] = "/nonexistent"
        self.addCleanup(self._restore_env)

    def _restore_env(self) -> None:
        for name, value in self._old_env.items():
            if value is None:
                os.environ.pop(name, None)
            else:
                os.environ[name] = value

    def mkdtemp(self) -> str:
        """Create a temporary directory removed at the end of the test."""
        path = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, path)
        return path
