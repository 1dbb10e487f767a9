#!/usr/bin/env python3
"""
models.py

Data model for tag rule libraries.

Persisted Shape
---------------
A rule collection document is a JSON array of libraries:

    [
      {
        "Context": [{"Key": "BankSwiftCode", "Value": "ARNBSARI"}, ...],
        "TagSpecDefinitions": [
          {
            "Id": ..., "Tag": ..., "Context": [...],
            "StatusTag": "ACTIVE", "CertaintyLevelTag": "HIGH",
            "Validity": {"StartDate": "2024-01-01", "EndDate": null},
            "TagRuleExpressions": [[{"SourceField", "Regex", "RegexDetails", ...}]],
            "Attributes": [{"AttributeTag", "AttributeRuleExpression", ...}]
          }
        ]
      }
    ]

Every dataclass converts to/from that shape via from_dict()/to_dict().
Transaction rows are plain dicts (open shape, any key may be absent).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


STATUS_TAGS = ("ACTIVE", "INACTIVE", "DRAFT")
CERTAINTY_LEVELS = ("HIGH", "MEDIUM", "LOW")
VALIDATION_KINDS = ("STRING", "NUMBER", "DATE")

DEFAULT_LANGUAGE = "en"

# Row values: str | int | float | bool | None
TransactionRow = Dict[str, Any]
DefinitionId = Union[str, int]


def stringify_value(value: Any) -> str:
    """
    Render a row value as text the way rule documents expect it:
    booleans lower-case, integral floats without ".0".
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return str(value)
    return str(value)


# ======================================================
# CONTEXT
# ======================================================

@dataclass(frozen=True)
class ContextEntry:
    key: str
    value: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContextEntry":
        return cls(key=str(data["Key"]), value=stringify_value(data.get("Value")))

    def to_dict(self) -> Dict[str, Any]:
        return {"Key": self.key, "Value": self.value}


Context = List[ContextEntry]


def context_from_list(items: Optional[List[Dict[str, Any]]]) -> Context:
    return [ContextEntry.from_dict(item) for item in (items or [])]


def context_to_list(context: Context) -> List[Dict[str, Any]]:
    return [entry.to_dict() for entry in context]


def context_value(context: Context, key: str) -> Optional[str]:
    for entry in context:
        if entry.key == key:
            return entry.value
    return None


def same_context(a: Context, b: Context) -> bool:
    """Order-irrelevant equality of two contexts."""
    return sorted((e.key, e.value) for e in a) == sorted((e.key, e.value) for e in b)


# ======================================================
# CONDITIONS (editor form)
# ======================================================

@dataclass
class Condition:
    """One user-authored match test against a single row field."""
    source_field: str
    operation: str
    value: str = ""
    values: Optional[List[str]] = None
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    verify_value: Optional[str] = None


@dataclass
class AttributeSpec:
    """One user-authored attribute extraction."""
    attribute_tag: str
    source_field: str
    extraction_operation: str
    is_mandatory: bool = False
    validation_kind: str = "STRING"
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    pattern: Optional[str] = None
    verify_value: Optional[str] = None


# ======================================================
# COMPILED EXPRESSIONS (persisted form)
# ======================================================

def _description_from_details(details: Optional[List[Dict[str, Any]]]) -> Optional[str]:
    if not details:
        return None
    for item in details:
        if item.get("LanguageCode") == DEFAULT_LANGUAGE and item.get("Description"):
            return item["Description"]
    first = details[0].get("Description")
    return first or None


def _details_from_description(description: Optional[str]) -> List[Dict[str, Any]]:
    if not description:
        return []
    return [{"LanguageCode": DEFAULT_LANGUAGE, "Description": description}]


@dataclass
class CompiledExpression:
    source_field: str
    pattern: str
    pattern_id: Optional[str] = None
    description: Optional[str] = None
    prompt: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompiledExpression":
        return cls(
            source_field=data["SourceField"],
            pattern=data.get("Regex") or "",
            pattern_id=data.get("ExpressionId"),
            description=_description_from_details(data.get("RegexDetails")),
            prompt=data.get("ExpressionPrompt"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "SourceField": self.source_field,
            "ExpressionPrompt": self.prompt,
            "ExpressionId": self.pattern_id,
            "Regex": self.pattern,
            "RegexDetails": _details_from_description(self.description),
        }


AndGroup = List[CompiledExpression]
RuleSet = List[AndGroup]


@dataclass
class AttributeExpression:
    source_field: str
    pattern: str
    description: Optional[str] = None
    verify_value: Optional[str] = None
    pattern_id: Optional[str] = None
    prompt: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AttributeExpression":
        verify = data.get("VerifyValue")
        return cls(
            source_field=data["SourceField"],
            pattern=data.get("Regex") or "",
            description=_description_from_details(data.get("RegexDetails")),
            verify_value=verify if verify else None,
            pattern_id=data.get("ExpressionId"),
            prompt=data.get("ExpressionPrompt"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "SourceField": self.source_field,
            "ExpressionPrompt": self.prompt,
            "ExpressionId": self.pattern_id,
            "Regex": self.pattern,
            "RegexDetails": _details_from_description(self.description),
        }
        if self.verify_value:
            out["VerifyValue"] = self.verify_value
        return out


@dataclass
class TagAttribute:
    attribute_tag: str
    expression: AttributeExpression
    is_mandatory: bool = False
    validation_kind: str = "STRING"
    lov_tag: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TagAttribute":
        # Older documents carry DataType instead of ValidationRuleTag
        kind = data.get("ValidationRuleTag") or data.get("DataType") or "STRING"
        return cls(
            attribute_tag=data["AttributeTag"],
            expression=AttributeExpression.from_dict(data["AttributeRuleExpression"]),
            is_mandatory=bool(data.get("IsMandatory", False)),
            validation_kind=kind,
            lov_tag=data.get("LOVTag"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "AttributeTag": self.attribute_tag,
            "IsMandatory": self.is_mandatory,
            "LOVTag": self.lov_tag,
            "ValidationRuleTag": self.validation_kind,
            "AttributeRuleExpression": self.expression.to_dict(),
        }


# ======================================================
# DEFINITIONS AND LIBRARIES
# ======================================================

@dataclass
class Validity:
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Validity":
        data = data or {}
        return cls(start_date=data.get("StartDate") or None, end_date=data.get("EndDate") or None)

    def to_dict(self) -> Dict[str, Any]:
        return {"StartDate": self.start_date, "EndDate": self.end_date}


@dataclass
class TagDefinition:
    id: DefinitionId
    tag: str
    context: Context = field(default_factory=list)
    status: str = "ACTIVE"
    certainty: str = "HIGH"
    validity: Validity = field(default_factory=Validity)
    rule_set: RuleSet = field(default_factory=list)
    attributes: List[TagAttribute] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TagDefinition":
        raw_context = data.get("Context")
        # Older documents stored the child context as a plain object
        if isinstance(raw_context, dict):
            raw_context = [{"Key": k, "Value": v} for k, v in raw_context.items()]
        return cls(
            id=data["Id"],
            tag=data["Tag"],
            context=context_from_list(raw_context),
            status=data.get("StatusTag", "ACTIVE"),
            certainty=data.get("CertaintyLevelTag", "HIGH"),
            validity=Validity.from_dict(data.get("Validity")),
            rule_set=[
                [CompiledExpression.from_dict(expr) for expr in group]
                for group in data.get("TagRuleExpressions") or []
            ],
            attributes=[TagAttribute.from_dict(a) for a in data.get("Attributes") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Id": self.id,
            "Context": context_to_list(self.context),
            "Tag": self.tag,
            "StatusTag": self.status,
            "CertaintyLevelTag": self.certainty,
            "Validity": self.validity.to_dict(),
            "TagRuleExpressions": [[expr.to_dict() for expr in group] for group in self.rule_set],
            "Attributes": [a.to_dict() for a in self.attributes],
        }


@dataclass
class RuleLibrary:
    context: Context = field(default_factory=list)
    definitions: List[TagDefinition] = field(default_factory=list)
    id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RuleLibrary":
        return cls(
            context=context_from_list(data.get("Context")),
            definitions=[TagDefinition.from_dict(d) for d in data.get("TagSpecDefinitions") or []],
            id=data.get("Id"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.id is not None:
            out["Id"] = self.id
        out["Context"] = context_to_list(self.context)
        out["TagSpecDefinitions"] = [d.to_dict() for d in self.definitions]
        return out


@dataclass
class AnalysisResult:
    """Per-row analysis; ephemeral, never persisted."""
    tags: List[str] = field(default_factory=list)
    attributes: Dict[str, Dict[str, Optional[str]]] = field(default_factory=dict)
    matched_definitions: List[TagDefinition] = field(default_factory=list)
    verified: Dict[str, Dict[str, bool]] = field(default_factory=dict)
