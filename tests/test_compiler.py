#!/usr/bin/env python3
"""
test_compiler.py

Unit tests for tagrules.compiler

Tests:
- Pattern shapes for every match operation
- Escaping of special characters
- Extraction shapes, predefined table, unknown operations
- Descriptions
- Form -> persisted expression helpers
- Determinism
"""

import re
import sys
import unittest
from pathlib import Path

# Add code directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "code"))

from tagrules.compiler import (
    compile_attribute,
    compile_attributes,
    compile_condition,
    compile_extraction,
    compile_match,
    describe_extraction,
    describe_match,
    escape_pattern,
    make_expression_id,
)
from tagrules.models import AttributeSpec, Condition


class TestCompileMatch(unittest.TestCase):
    """Match operation -> pattern source."""

    def test_anchored_shapes(self):
        self.assertEqual(compile_match("begins_with", "ORDP"), "^ORDP")
        self.assertEqual(compile_match("ends_with", "ORDP"), "ORDP$")
        self.assertEqual(compile_match("equals", "ORDP"), "^ORDP$")
        self.assertEqual(compile_match("contains", "ORDP"), "ORDP")

    def test_negative_shapes(self):
        self.assertEqual(compile_match("does_not_contain", "FEE"), "^(?!.*FEE)")
        self.assertEqual(compile_match("does_not_equal", "FEE"), "^(?!FEE$)")

    def test_matches_pattern_joins_escaped_values(self):
        self.assertEqual(compile_match("matches_pattern", "", values=["A.B", "C"]), r"A\.B|C")

    def test_matches_pattern_falls_back_to_value(self):
        self.assertEqual(compile_match("matches_pattern", "SALARY", values=[]), "SALARY")

    def test_extract_and_compare(self):
        self.assertEqual(
            compile_match("extract_and_compare", "1234", prefix="REF/", suffix="/"),
            "(?:REF/)1234(?:/)",
        )

    def test_numeric_sentinels(self):
        self.assertEqual(compile_match("greater_than", "100"), "__NUMERIC_GT:100")
        self.assertEqual(compile_match("less_than", " 5 "), "__NUMERIC_LT:5")
        self.assertEqual(compile_match("greater_than_or_equal", "0"), "__NUMERIC_GTE:0")
        self.assertEqual(compile_match("less_than_or_equal", "1.5"), "__NUMERIC_LTE:1.5")

    def test_special_characters_are_escaped(self):
        value = "a.b*c+d?e^f$g{h}i(j)k|l[m]n\\o"
        escaped = escape_pattern(value)
        self.assertEqual(escaped, r"a\.b\*c\+d\?e\^f\$g\{h\}i\(j\)k\|l\[m\]n\\o")
        # Escaped value matches itself literally
        self.assertIsNotNone(re.search(compile_match("equals", value), value))

    def test_plain_characters_untouched(self):
        self.assertEqual(escape_pattern("ORDP/1234 -_:"), "ORDP/1234 -_:")


class TestCompileExtraction(unittest.TestCase):
    """Extraction operation -> pattern source."""

    def test_between_after_before(self):
        self.assertEqual(compile_extraction("extract_between", prefix="A", suffix="B"), "A(.*?)B")
        self.assertEqual(compile_extraction("extract_after", prefix="REF:"), "REF:(.*)")
        self.assertEqual(compile_extraction("extract_before", suffix="/"), "(.*?)/")

    def test_between_escapes_prefix_and_suffix(self):
        self.assertEqual(compile_extraction("extract_between", prefix="(", suffix=")"), r"\((.*?)\)")

    def test_matching_uses_raw_fragment(self):
        self.assertEqual(compile_extraction("extract_matching", pattern=r"\d+"), r"(\d+)")
        self.assertEqual(compile_extraction("extract_matching"), "(.*)")

    def test_between_and_verify_compiles_like_between(self):
        self.assertEqual(
            compile_extraction("extract_between_and_verify", prefix="A", suffix="B", verify_value="X"),
            "A(.*?)B",
        )

    def test_predefined_ignores_parameters(self):
        self.assertEqual(
            compile_extraction("predefined:ksa_iban", prefix="IGNORED", suffix="IGNORED"),
            r"(SA\d{22})",
        )

    def test_unknown_operations(self):
        self.assertEqual(compile_extraction("predefined:nope"), "(.*)")
        self.assertEqual(compile_extraction("something_else"), "(.*)")


class TestDescriptions(unittest.TestCase):
    """Human-readable descriptions attached at compile time."""

    def test_match_descriptions(self):
        self.assertEqual(describe_match("begins_with", "ORDP"), "Begin with 'ORDP'")
        self.assertEqual(describe_match("ends_with", "X"), "End with 'X'")
        self.assertEqual(describe_match("contains", "X"), "Contain 'X'")
        self.assertEqual(describe_match("does_not_contain", "X"), "Not contain 'X'")
        self.assertEqual(describe_match("equals", "X"), "Equal 'X'")
        self.assertEqual(describe_match("does_not_equal", "X"), "Not equal 'X'")
        self.assertEqual(describe_match("matches_pattern", "", values=["A", "B"]), "Match one of: 'A', 'B'")
        self.assertEqual(
            describe_match("extract_and_compare", "1", prefix="P", suffix="S"),
            "Extract between 'P' and 'S' equals '1'",
        )
        self.assertEqual(describe_match("greater_than", "100"), "Greater than 100")
        self.assertEqual(describe_match("less_than_or_equal", "7"), "Less than or equal to 7")

    def test_extraction_descriptions(self):
        self.assertEqual(describe_extraction("extract_between", prefix="A", suffix="B"), "Extract between 'A' and 'B'")
        self.assertEqual(describe_extraction("extract_after", prefix="A"), "Extract after 'A'")
        self.assertEqual(describe_extraction("extract_before", suffix="B"), "Extract before 'B'")
        self.assertEqual(describe_extraction("extract_matching", pattern=r"\d+"), r"Extract matching '\d+'")
        self.assertEqual(
            describe_extraction("extract_between_and_verify", prefix="A", suffix="B", verify_value="V"),
            "Extract between 'A' and 'B' and verify 'V'",
        )
        self.assertEqual(describe_extraction("predefined:ksa_iban"), "Verify KSA IBAN")
        self.assertEqual(describe_extraction("bogus"), "Extract value")


class TestFormHelpers(unittest.TestCase):
    """Condition / AttributeSpec -> persisted expressions."""

    def test_compile_condition(self):
        expr = compile_condition(Condition("Field86", "begins_with", "ORDP"), pattern_id="d1-cond-0")
        self.assertEqual(expr.source_field, "Field86")
        self.assertEqual(expr.pattern, "^ORDP")
        self.assertEqual(expr.description, "Begin with 'ORDP'")
        self.assertEqual(expr.pattern_id, "d1-cond-0")

    def test_compile_attribute_keeps_verify_value(self):
        attr = compile_attribute(
            AttributeSpec(
                "Code", "Field86", "extract_between_and_verify",
                is_mandatory=True, prefix="C/", suffix="/", verify_value="XYZ",
            )
        )
        self.assertEqual(attr.attribute_tag, "Code")
        self.assertTrue(attr.is_mandatory)
        self.assertEqual(attr.expression.pattern, "C/(.*?)/")
        self.assertEqual(attr.expression.verify_value, "XYZ")

    def test_compile_attribute_drops_empty_verify_value(self):
        attr = compile_attribute(AttributeSpec("Ref", "Field86", "extract_after", prefix="R", verify_value=""))
        self.assertIsNone(attr.expression.verify_value)

    def test_compile_attributes_assigns_expression_ids(self):
        attrs = compile_attributes(
            "def-9",
            [
                AttributeSpec("A", "F", "extract_after", prefix="x"),
                AttributeSpec("B", "F", "extract_before", suffix="y"),
            ],
        )
        self.assertEqual([a.expression.pattern_id for a in attrs], ["def-9-attr-0", "def-9-attr-1"])
        self.assertEqual(make_expression_id(7, "cond", 2), "7-cond-2")

    def test_deterministic(self):
        c = Condition("Field86", "matches_pattern", "", values=["A|B", "C.D"])
        first = compile_condition(c)
        second = compile_condition(c)
        self.assertEqual(first, second)


if __name__ == "__main__":
    unittest.main()
