# test_worktree.py -- Tests for the in-memory working tree
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

"""Tests for gitvault.worktree."""

import os
from unittest import mock

from gitvault.errors import ObjectNotFound
from gitvault.object_store import DiskObjectStore
from gitvault.worktree import BLOB_MODE, TREE_MODE, WorkingTree

from . import TestCase

EMPTY_TREE_ID = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"


class WorkingTreeTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.store = DiskObjectStore(os.path.join(self.mkdtemp(), "objects"))
        self.addCleanup(self.store.close)

    def test_empty(self) -> None:
        tree = WorkingTree(self.store)
        self.assertEqual(0, len(tree))
        self.assertEqual([], list(tree))
        self.assertFalse(tree.modified)
        self.assertEqual(EMPTY_TREE_ID, tree.save())

    def test_set_get(self) -> None:
        tree = WorkingTree(self.store)
        tree["a"] = b"b"
        self.assertEqual(b"b", tree["a"])
        self.assertTrue(tree.modified)
        self.assertIn("a", tree)
        self.assertNotIn("b", tree)

    def test_str_is_utf8(self) -> None:
        tree = WorkingTree(self.store)
        tree["greeting"] = "héllo"
        self.assertEqual("héllo".encode(), tree["greeting"])

    def test_missing(self) -> None:
        tree = WorkingTree(self.store)
        self.assertRaises(KeyError, tree.__getitem__, "missing")
        self.assertRaises(KeyError, tree.__getitem__, "")
        tree["file"] = b"data"
        self.assertRaises(KeyError, tree.__getitem__, "file/below")

    def test_nested(self) -> None:
        tree = WorkingTree(self.store)
        tree["dir/sub/file"] = b"deep"
        self.assertEqual(b"deep", tree["dir/sub/file"])
        sub = tree["dir"]
        self.assertIsInstance(sub, WorkingTree)
        self.assertEqual(["sub"], sub.keys())
        self.assertEqual(b"deep", sub["sub/file"])

    def test_set_subtree(self) -> None:
        tree = WorkingTree(self.store)
        sub = WorkingTree(self.store)
        sub["x"] = b"1"
        tree["d"] = sub
        self.assertIs(sub, tree["d"])
        self.assertEqual(b"1", tree["d/x"])

    def test_delete(self) -> None:
        tree = WorkingTree(self.store)
        tree["a"] = b"1"
        tree["d/b"] = b"2"
        del tree["d/b"]
        self.assertNotIn("d/b", tree)
        self.assertIn("d", tree)
        del tree["a"]
        self.assertEqual(["d"], tree.keys())
        self.assertRaises(KeyError, tree.__delitem__, "a")

    def test_items_sorted(self) -> None:
        tree = WorkingTree(self.store)
        tree["b"] = b"2"
        tree["a"] = b"1"
        self.assertEqual([("a", b"1"), ("b", b"2")], tree.items())

    def test_save_and_reload(self) -> None:
        tree = WorkingTree(self.store)
        tree["README"] = b"read me\n"
        tree["src/main.py"] = b"print('hi')\n"
        tree_id = tree.save()
        self.assertFalse(tree.modified)
        self.assertFalse(tree["src"].modified)
        stored = self.store.get_tree(tree_id)
        self.assertEqual(["README", "src"], [e.path for e in stored.items()])
        self.assertEqual(TREE_MODE, stored["src"][0])
        self.assertEqual(BLOB_MODE, stored["README"][0])

        store = DiskObjectStore(self.store.path)
        self.addCleanup(store.close)
        reloaded = WorkingTree(store, tree_id)
        self.assertEqual(["README", "src"], reloaded.keys())
        self.assertEqual(b"print('hi')\n", reloaded["src/main.py"])
        self.assertEqual(tree_id, reloaded.save())

    def test_lazy_load(self) -> None:
        tree = WorkingTree(self.store)
        tree["a/b"] = b"data"
        tree_id = tree.save()
        self.store.clear_cache()
        with mock.patch.object(
            self.store, "get_tree", wraps=self.store.get_tree
        ) as get_tree:
            reloaded = WorkingTree(self.store, tree_id)
            get_tree.assert_not_called()
            reloaded.keys()
            self.assertEqual(1, get_tree.call_count)
            reloaded["a/b"]
            self.assertEqual(2, get_tree.call_count)

    def test_modified_propagates(self) -> None:
        tree = WorkingTree(self.store)
        tree["a/b/c"] = b"1"
        tree["x/y"] = b"2"
        tree.save()
        tree["a/b/c"] = b"changed"
        self.assertTrue(tree.modified)
        self.assertTrue(tree["a"].modified)
        self.assertTrue(tree["a/b"].modified)
        self.assertFalse(tree["x"].modified)

    def test_unmodified_subtree_keeps_id(self) -> None:
        tree = WorkingTree(self.store)
        tree["a/file"] = b"1"
        tree["b/file"] = b"2"
        tree.save()
        b_id = tree["b"].id
        tree["a/file"] = b"changed"
        with mock.patch.object(
            self.store, "add_object", wraps=self.store.add_object
        ) as add_object:
            tree.save()
        self.assertEqual(b_id, tree["b"].id)
        # The new blob, "a" and the root are written; "b" is left alone.
        self.assertEqual(3, add_object.call_count)

    def test_same_content_same_id(self) -> None:
        first = WorkingTree(self.store)
        first["f"] = b"same"
        second = WorkingTree(self.store)
        second["f"] = b"same"
        self.assertEqual(first.save(), second.save())

    def test_missing_blob(self) -> None:
        tree = WorkingTree(self.store)
        tree["f"] = b"data"
        tree_id = tree.save()
        store = DiskObjectStore(self.store.path)
        self.addCleanup(store.close)
        blob_id = self.store.get_tree(tree_id)["f"][1]
        os.remove(os.path.join(store.path, blob_id[:2], blob_id[2:]))
        reloaded = WorkingTree(store, tree_id)
        self.assertIn("f", reloaded.keys())
        self.assertRaises(ObjectNotFound, reloaded.__getitem__, "f")
