"""
Tag rules engine: compile, evaluate, extract, analyze and decompile
transaction tagging rules.
"""

from .analyzer import (
    analyze_row,
    analyze_rows,
    context_matches,
    is_within_validity,
    preview_definition,
)
from .compiler import (
    compile_attribute,
    compile_condition,
    compile_extraction,
    compile_match,
    describe_extraction,
    describe_match,
)
from .decompiler import (
    decompose_extraction,
    decompose_match,
    describe,
    describe_expression,
    to_attribute_spec,
    to_condition,
)
from .evaluator import evaluate_and_group, evaluate_rule_set
from .extractor import extract_attributes, verify_attributes
from .models import (
    AnalysisResult,
    AttributeExpression,
    AttributeSpec,
    CompiledExpression,
    Condition,
    ContextEntry,
    RuleLibrary,
    TagAttribute,
    TagDefinition,
    Validity,
)
from .persistence import (
    RuleCollectionFormatError,
    load_libraries,
    load_transactions,
    loads_libraries,
    dumps_libraries,
    save_libraries,
)
from .store import RuleCollection

__all__ = [
    "analyze_row",
    "analyze_rows",
    "context_matches",
    "is_within_validity",
    "preview_definition",
    "compile_attribute",
    "compile_condition",
    "compile_extraction",
    "compile_match",
    "describe_extraction",
    "describe_match",
    "decompose_extraction",
    "decompose_match",
    "describe",
    "describe_expression",
    "to_attribute_spec",
    "to_condition",
    "evaluate_and_group",
    "evaluate_rule_set",
    "extract_attributes",
    "verify_attributes",
    "AnalysisResult",
    "AttributeExpression",
    "AttributeSpec",
    "CompiledExpression",
    "Condition",
    "ContextEntry",
    "RuleLibrary",
    "TagAttribute",
    "TagDefinition",
    "Validity",
    "RuleCollectionFormatError",
    "load_libraries",
    "load_transactions",
    "loads_libraries",
    "dumps_libraries",
    "save_libraries",
    "RuleCollection",
]
