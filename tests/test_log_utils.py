# test_log_utils.py -- Tests for log_utils.py
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

"""Tests for gitvault.log_utils."""

import logging
import os
import tempfile

from gitvault.log_utils import (
    _GITVAULT_LOGGER,
    _NULL_HANDLER,
    _get_trace_target,
    default_logging_config,
    getLogger,
    remove_null_handler,
)

from . import TestCase


class LogUtilsTests(TestCase):
    """Tests for log_utils."""

    def setUp(self) -> None:
        super().setUp()
        self.original_handlers = list(_GITVAULT_LOGGER.handlers)
        root_logger = logging.getLogger()
        self.original_root_handlers = list(root_logger.handlers)
        self.original_root_level = root_logger.level

    def tearDown(self) -> None:
        _GITVAULT_LOGGER.handlers = self.original_handlers
        root_logger = logging.getLogger()
        root_logger.handlers = self.original_root_handlers
        root_logger.level = self.original_root_level
        super().tearDown()

    def _set_trace(self, value: str | None, name: str = "GIT_TRACE") -> None:
        if value is None:
            os.environ.pop(name, None)
        else:
            os.environ[name] = value

    def test_null_handler_installed(self) -> None:
        self.assertIn(_NULL_HANDLER, _GITVAULT_LOGGER.handlers)

    def test_get_logger(self) -> None:
        logger = getLogger("gitvault.test")
        self.assertIsInstance(logger, logging.Logger)
        self.assertEqual(logger.name, "gitvault.test")

    def test_module_loggers_are_children(self) -> None:
        from gitvault import object_store

        self.assertEqual("gitvault.object_store", object_store.logger.name)
        self.assertIs(_GITVAULT_LOGGER, object_store.logger.parent)

    def test_remove_null_handler(self) -> None:
        if _NULL_HANDLER not in _GITVAULT_LOGGER.handlers:
            _GITVAULT_LOGGER.addHandler(_NULL_HANDLER)
        remove_null_handler()
        self.assertNotIn(_NULL_HANDLER, _GITVAULT_LOGGER.handlers)

    def test_default_logging_config(self) -> None:
        root_logger = logging.getLogger()
        root_logger.handlers = []
        default_logging_config()
        self.assertNotIn(_NULL_HANDLER, _GITVAULT_LOGGER.handlers)
        self.assertTrue(root_logger.handlers)
        self.assertEqual(logging.INFO, root_logger.level)

    def test_get_trace_target_disabled(self) -> None:
        for value in (None, "", "0", "false", "FALSE"):
            self._set_trace(value)
            self.assertIsNone(_get_trace_target())

    def test_get_trace_target_stderr(self) -> None:
        for value in ("1", "2", "true", "TRUE"):
            self._set_trace(value)
            self.assertEqual(2, _get_trace_target())

    def test_get_trace_target_file_descriptor(self) -> None:
        for fd in range(3, 10):
            self._set_trace(str(fd))
            self.assertEqual(fd, _get_trace_target())
        self._set_trace("10")
        self.assertIsNone(_get_trace_target())

    def test_get_trace_target_file(self) -> None:
        with tempfile.NamedTemporaryFile(mode="w", delete=False) as f:
            trace_file = f.name
        self.addCleanup(os.unlink, trace_file)
        self._set_trace(trace_file)
        self.assertEqual(trace_file, _get_trace_target())

    def test_get_trace_target_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            self._set_trace(tmpdir)
            self.assertEqual(tmpdir, _get_trace_target())

    def test_get_trace_target_relative_path(self) -> None:
        self._set_trace("relative/path")
        self.assertIsNone(_get_trace_target())

    def test_gitvault_trace_takes_precedence(self) -> None:
        self._set_trace("0")
        self._set_trace("1", "GITVAULT_TRACE")
        self.assertEqual(2, _get_trace_target())

    def test_default_logging_config_with_trace(self) -> None:
        root_logger = logging.getLogger()
        root_logger.handlers = []
        root_logger.level = logging.WARNING
        self._set_trace("1")
        default_logging_config()
        self.assertNotIn(_NULL_HANDLER, _GITVAULT_LOGGER.handlers)
        self.assertTrue(root_logger.handlers)
        self.assertEqual(logging.DEBUG, root_logger.level)
