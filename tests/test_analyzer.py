#!/usr/bin/env python3
"""
test_analyzer.py

Unit tests for tagrules.analyzer

Tests:
- Example scenario (ARNBSARI / CR library)
- Two-level context (library AND definition)
- Wildcard contexts
- Status and validity window
- Ordering, duplicates and attribute collisions
- Live preview of a single definition
"""

import sys
import unittest
from pathlib import Path

# Add code directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "code"))

from tagrules.analyzer import (
    analyze_row,
    analyze_rows,
    context_matches,
    is_within_validity,
    preview_definition,
)
from tagrules.compiler import compile_attribute, compile_condition
from tagrules.models import (
    AttributeSpec,
    Condition,
    ContextEntry,
    RuleLibrary,
    TagDefinition,
    Validity,
)

TODAY = "2024-06-01"


def definition(def_id, tag, groups=None, context=None, **kwargs):
    return TagDefinition(
        id=def_id,
        tag=tag,
        context=context or [],
        rule_set=[[compile_condition(c) for c in g] for g in (groups or [])],
        **kwargs,
    )


def arnb_library(*definitions):
    return RuleLibrary(
        context=[ContextEntry("BankSwiftCode", "ARNBSARI"), ContextEntry("Side", "CR")],
        definitions=list(definitions),
    )


class TestExampleScenario(unittest.TestCase):
    """Library context gates a begins_with rule."""

    def setUp(self):
        self.libraries = [
            arnb_library(definition("d1", "ORDERING_PARTY", [[Condition("Field86", "begins_with", "ORDP")]]))
        ]

    def test_tag_present(self):
        row = {"BankSwiftCode": "ARNBSARI", "Side": "CR", "Field86": "ORDP/1234"}
        result = analyze_row(row, self.libraries, TODAY)
        self.assertEqual(result.tags, ["ORDERING_PARTY"])
        self.assertEqual([d.id for d in result.matched_definitions], ["d1"])
        self.assertEqual(result.attributes, {"ORDERING_PARTY": {}})

    def test_side_mismatch(self):
        row = {"BankSwiftCode": "ARNBSARI", "Side": "DR", "Field86": "ORDP/1234"}
        self.assertEqual(analyze_row(row, self.libraries, TODAY).tags, [])

    def test_rule_miss(self):
        row = {"BankSwiftCode": "ARNBSARI", "Side": "CR", "Field86": "OTHER"}
        self.assertEqual(analyze_row(row, self.libraries, TODAY).tags, [])

    def test_context_field_missing(self):
        row = {"Side": "CR", "Field86": "ORDP/1234"}
        self.assertEqual(analyze_row(row, self.libraries, TODAY).tags, [])


class TestContexts(unittest.TestCase):
    """Parent and child contexts combine with AND."""

    def test_two_level_context(self):
        d = definition("d1", "SWIFT_IN", context=[ContextEntry("TransactionTypeCode", "NTRF")])
        libraries = [arnb_library(d)]
        base = {"BankSwiftCode": "ARNBSARI", "Side": "CR"}
        self.assertEqual(analyze_row({**base, "TransactionTypeCode": "NTRF"}, libraries, TODAY).tags, ["SWIFT_IN"])
        self.assertEqual(analyze_row({**base, "TransactionTypeCode": "NCHK"}, libraries, TODAY).tags, [])
        self.assertEqual(
            analyze_row({"BankSwiftCode": "OTHER", "Side": "CR", "TransactionTypeCode": "NTRF"}, libraries, TODAY).tags,
            [],
        )

    def test_wildcard_contexts(self):
        libraries = [RuleLibrary(context=[], definitions=[definition("d1", "ANY")])]
        self.assertEqual(analyze_row({}, libraries, TODAY).tags, ["ANY"])

    def test_context_values_are_stringified(self):
        ctx = [ContextEntry("Flag", "true"), ContextEntry("Code", "5")]
        self.assertTrue(context_matches(ctx, {"Flag": True, "Code": 5}))
        self.assertFalse(context_matches(ctx, {"Flag": False, "Code": 5}))
        self.assertFalse(context_matches(ctx, {"Flag": None, "Code": 5}))


class TestStatusAndValidity(unittest.TestCase):
    """Only ACTIVE definitions inside their window are considered."""

    def test_inactive_skipped(self):
        libraries = [RuleLibrary(definitions=[definition("d1", "X", status="INACTIVE")])]
        self.assertEqual(analyze_row({}, libraries, TODAY).tags, [])

    def test_validity_window(self):
        v = Validity(start_date="2024-01-01", end_date="2024-12-31")
        self.assertTrue(is_within_validity(v, "2024-01-01"))
        self.assertTrue(is_within_validity(v, "2024-12-31"))
        self.assertFalse(is_within_validity(v, "2023-12-31"))
        self.assertFalse(is_within_validity(v, "2025-01-01"))
        self.assertTrue(is_within_validity(Validity(), "1999-01-01"))
        self.assertTrue(is_within_validity(Validity(start_date="2024-01-01"), "2099-01-01"))

    def test_expired_definition_skipped(self):
        d = definition("d1", "OLD", validity=Validity(start_date="2020-01-01", end_date="2020-12-31"))
        libraries = [RuleLibrary(definitions=[d])]
        self.assertEqual(analyze_row({}, libraries, TODAY).tags, [])
        self.assertEqual(analyze_row({}, libraries, "2020-06-01").tags, ["OLD"])


class TestOrdering(unittest.TestCase):
    """Library then definition order, duplicates kept."""

    def test_order_and_duplicates(self):
        first = RuleLibrary(definitions=[definition("a", "T1"), definition("b", "T2")])
        second = RuleLibrary(definitions=[definition("c", "T1")])
        result = analyze_row({}, [first, second], TODAY)
        self.assertEqual(result.tags, ["T1", "T2", "T1"])
        self.assertEqual([d.id for d in result.matched_definitions], ["a", "b", "c"])

    def test_later_attributes_overwrite_earlier(self):
        a = definition("a", "T", attributes=[compile_attribute(AttributeSpec("V", "F", "extract_after", prefix="A:"))])
        b = definition("b", "T", attributes=[compile_attribute(AttributeSpec("W", "F", "extract_after", prefix="B:"))])
        result = analyze_row({"F": "A:1 B:2"}, [RuleLibrary(definitions=[a, b])], TODAY)
        self.assertEqual(result.attributes, {"T": {"W": "2"}})

    def test_verification_recorded_per_tag(self):
        d = definition(
            "d1", "IBAN_SEEN",
            attributes=[compile_attribute(AttributeSpec("IBAN", "Field86", "predefined:ksa_iban"))],
        )
        result = analyze_row({"Field86": "no iban"}, [RuleLibrary(definitions=[d])], TODAY)
        self.assertEqual(result.attributes, {"IBAN_SEEN": {"IBAN": None}})
        self.assertEqual(result.verified, {"IBAN_SEEN": {"IBAN": False}})

    def test_analyze_rows(self):
        libraries = [RuleLibrary(definitions=[definition("d1", "CR", [[Condition("Side", "equals", "CR")]])])]
        results = analyze_rows([{"Side": "CR"}, {"Side": "DR"}, {}], libraries, TODAY)
        self.assertEqual([r.tags for r in results], [["CR"], [], []])


class TestPreview(unittest.TestCase):
    """Single in-progress definition against every row."""

    def test_preview_ignores_library_context(self):
        d = definition("draft", "DRAFT_TAG", [[Condition("Field86", "contains", "FEE")]])
        results = preview_definition(d, [{"Field86": "BANK FEE"}, {"Field86": "SALARY"}], TODAY)
        self.assertEqual([r.tags for r in results], [["DRAFT_TAG"], []])

    def test_preview_honours_child_context(self):
        d = definition("draft", "DRAFT_TAG", context=[ContextEntry("Side", "CR")])
        results = preview_definition(d, [{"Side": "CR"}, {"Side": "DR"}], TODAY)
        self.assertEqual([r.tags for r in results], [["DRAFT_TAG"], []])


if __name__ == "__main__":
    unittest.main()
