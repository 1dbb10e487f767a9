#!/usr/bin/env python3
"""
test_store.py

Unit tests for tagrules.store.RuleCollection

Tests:
- Grouping definitions by parent context
- Update in place and move across contexts
- Delete and empty-library cleanup
- Import (upsert by Id) and single-definition export
- Snapshot isolation
"""

import sys
import unittest
from pathlib import Path

# Add code directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "code"))

from tagrules.models import ContextEntry, RuleLibrary, TagDefinition
from tagrules.store import RuleCollection

CR = [ContextEntry("BankSwiftCode", "ARNBSARI"), ContextEntry("Side", "CR")]
CR_REORDERED = [ContextEntry("Side", "CR"), ContextEntry("BankSwiftCode", "ARNBSARI")]
DR = [ContextEntry("BankSwiftCode", "ARNBSARI"), ContextEntry("Side", "DR")]


class TestRuleCollection(unittest.TestCase):
    """Editor operations on an in-memory collection."""

    def setUp(self):
        self.store = RuleCollection()

    def test_add_groups_by_context(self):
        lib_a = self.store.add_definition(CR, TagDefinition(id="a", tag="A"))
        lib_b = self.store.add_definition(CR_REORDERED, TagDefinition(id="b", tag="B"))
        self.store.add_definition(DR, TagDefinition(id="c", tag="C"))

        self.assertIs(lib_a, lib_b)
        self.assertEqual(len(self.store.libraries), 2)
        self.assertEqual([d.id for d in self.store.definitions()], ["a", "b", "c"])
        self.assertIsNotNone(lib_a.id)

    def test_add_duplicate_id(self):
        self.store.add_definition(CR, TagDefinition(id="a", tag="A"))
        with self.assertRaises(ValueError):
            self.store.add_definition(DR, TagDefinition(id="a", tag="A2"))

    def test_update_in_place(self):
        self.store.add_definition(CR, TagDefinition(id="a", tag="A"))
        self.store.add_definition(CR, TagDefinition(id="b", tag="B"))
        self.store.update_definition(CR, TagDefinition(id="a", tag="A_RENAMED"))

        self.assertEqual([d.tag for d in self.store.definitions()], ["A_RENAMED", "B"])

    def test_update_moves_and_drops_empty_library(self):
        self.store.add_definition(CR, TagDefinition(id="a", tag="A"))
        target = self.store.update_definition(DR, TagDefinition(id="a", tag="A"))

        libraries = self.store.libraries
        self.assertEqual(len(libraries), 1)
        self.assertEqual(libraries[0].context, DR)
        self.assertEqual(target.definitions[0].id, "a")

    def test_update_unknown(self):
        with self.assertRaises(KeyError):
            self.store.update_definition(CR, TagDefinition(id="nope", tag="X"))

    def test_delete(self):
        self.store.add_definition(CR, TagDefinition(id="a", tag="A"))
        self.store.add_definition(DR, TagDefinition(id="b", tag="B"))

        removed = self.store.delete_definition("a")
        self.assertEqual(removed.tag, "A")
        self.assertIsNone(self.store.find("a"))
        self.assertEqual(len(self.store.libraries), 1)

        with self.assertRaises(KeyError):
            self.store.delete_definition("a")

    def test_import_upserts_by_id(self):
        self.store.add_definition(CR, TagDefinition(id="a", tag="A"))
        imported = [
            RuleLibrary(context=CR, definitions=[TagDefinition(id="a", tag="A_V2")]),
            RuleLibrary(context=DR, definitions=[TagDefinition(id="b", tag="B")]),
        ]

        count = self.store.import_libraries(imported)

        self.assertEqual(count, 2)
        self.assertEqual(sorted(d.tag for d in self.store.definitions()), ["A_V2", "B"])
        self.assertEqual(len(self.store.libraries), 2)

    def test_export_definition(self):
        lib = self.store.add_definition(CR, TagDefinition(id="a", tag="A"))
        self.store.add_definition(CR, TagDefinition(id="b", tag="B"))

        exported = self.store.export_definition("b")

        self.assertEqual(len(exported), 1)
        self.assertEqual(exported[0].context, CR)
        self.assertEqual(exported[0].id, lib.id)
        self.assertEqual([d.id for d in exported[0].definitions], ["b"])

    def test_snapshot_is_isolated(self):
        self.store.add_definition(CR, TagDefinition(id="a", tag="A"))
        snapshot = self.store.libraries
        snapshot[0].definitions[0].tag = "MUTATED"
        self.assertEqual(self.store.find("a")[1].tag, "A")

    def test_constructor_copies_input(self):
        source = [RuleLibrary(context=CR, definitions=[TagDefinition(id="a", tag="A")], id="lib-1")]
        store = RuleCollection(source)
        store.delete_definition("a")
        self.assertEqual(len(source[0].definitions), 1)


if __name__ == "__main__":
    unittest.main()
