"""
Rule Evaluator: decides whether a row satisfies compiled conditions.

- AndGroup: every condition must match (left-to-right, stops at first miss)
- RuleSet:  any AndGroup may match; an empty RuleSet always matches

Never raises for bad input: a missing field, an unparseable number or a
malformed pattern is simply a non-match.
"""

from __future__ import annotations

from .compiled import parse_compiled
from .models import AndGroup, CompiledExpression, RuleSet, TransactionRow


def evaluate_condition(expression: CompiledExpression, row: TransactionRow) -> bool:
    value = row.get(expression.source_field)
    if value is None:
        return False
    return parse_compiled(expression.pattern).matches(value)


def evaluate_and_group(group: AndGroup, row: TransactionRow) -> bool:
    return all(evaluate_condition(expression, row) for expression in group)


def evaluate_rule_set(rule_set: RuleSet, row: TransactionRow) -> bool:
    if not rule_set:
        return True
    return any(evaluate_and_group(group, row) for group in rule_set)
