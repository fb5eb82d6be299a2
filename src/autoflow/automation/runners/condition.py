"""Condition runner (``logic.condition``) - the only branching node type.

Resolves ``field`` against the context's template data, renders
``value`` as a template, applies ``operator`` and reports the outcome as
``branch = "true" | "false"``.  Evaluation never fails the node: an
unknown operator, a type mismatch or a broken regex simply evaluates to
false.

Operators::

    equals / ==            not_equals / !=        (strict: same type)
    contains               not_contains           (strings only)
    starts_with            ends_with              (strings only)
    greater_than / >       less_than / <          (numeric only;
    greater_or_equal / >=  less_or_equal / <=      numeric strings count)
    is_empty               is_not_empty           (truthiness; "0" is not empty)
    is_null                is_not_null
    in_list                not_in_list            ("a, b, c" or a list)
    regex                                         ("/pattern/flags" accepted)
"""

from __future__ import annotations

import re
from collections.abc import Callable
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict

from autoflow.automation.context import AutomationContext
from autoflow.automation.result import NodeResult
from autoflow.automation.runners.base import NodeRunner
from autoflow.automation.templates import get_value_by_path, render_string

_NUMERIC = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")

_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}


class ConditionConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    field: str = ""
    operator: str = "equals"
    value: Any = ""


def to_number(value: Any) -> float | int | None:
    """Numeric value of ``value``, or None if it is not numeric.

    Booleans are not numeric; numeric strings are.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, str) and _NUMERIC.match(value):
        return float(value)
    return None


def strict_equals(left: Any, right: Any) -> bool:
    return type(left) is type(right) and left == right


def _both_strings(left: Any, right: Any) -> bool:
    return isinstance(left, str) and isinstance(right, str)


def _compare(left: Any, right: Any, op: Callable[[Any, Any], bool]) -> bool:
    a, b = to_number(left), to_number(right)
    if a is None or b is None:
        return False
    return op(a, b)


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def loose_equals(left: Any, right: Any) -> bool:
    """Membership equality: numbers by value, other scalars by string form."""
    a, b = to_number(left), to_number(right)
    if a is not None and b is not None:
        return a == b
    if _is_scalar(left) and _is_scalar(right):
        return str(left) == str(right)
    return left == right


def in_list(value: Any, candidates: Any) -> bool:
    if isinstance(candidates, str):
        candidates = [part.strip() for part in candidates.split(",")]
    if not isinstance(candidates, (list, tuple)):
        return False
    return any(loose_equals(value, candidate) for candidate in candidates)


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile ``pattern``, honouring ``/body/flags`` delimiters."""
    if len(pattern) >= 2 and pattern.startswith("/"):
        end = pattern.rfind("/")
        if end > 0:
            flags = 0
            for char in pattern[end + 1:]:
                flags |= _REGEX_FLAGS.get(char, 0)
            return re.compile(pattern[1:end], flags)
    return re.compile(pattern)


def regex_matches(value: Any, pattern: Any) -> bool:
    if not _both_strings(value, pattern):
        return False
    try:
        return compile_pattern(pattern).search(value) is not None
    except re.error:
        return False


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "equals": strict_equals,
    "not_equals": lambda a, b: not strict_equals(a, b),
    "contains": lambda a, b: _both_strings(a, b) and b in a,
    "not_contains": lambda a, b: _both_strings(a, b) and b not in a,
    "starts_with": lambda a, b: _both_strings(a, b) and a.startswith(b),
    "ends_with": lambda a, b: _both_strings(a, b) and a.endswith(b),
    "greater_than": lambda a, b: _compare(a, b, lambda x, y: x > y),
    "less_than": lambda a, b: _compare(a, b, lambda x, y: x < y),
    "greater_or_equal": lambda a, b: _compare(a, b, lambda x, y: x >= y),
    "less_or_equal": lambda a, b: _compare(a, b, lambda x, y: x <= y),
    "is_empty": lambda a, _b: not a,
    "is_not_empty": lambda a, _b: bool(a),
    "is_null": lambda a, _b: a is None,
    "is_not_null": lambda a, _b: a is not None,
    "in_list": in_list,
    "not_in_list": lambda a, b: not in_list(a, b),
    "regex": regex_matches,
}

OPERATOR_ALIASES = {
    "==": "equals",
    "!=": "not_equals",
    ">": "greater_than",
    "<": "less_than",
    ">=": "greater_or_equal",
    "<=": "less_or_equal",
}


def evaluate(actual: Any, operator: str, expected: Any) -> bool:
    """Apply ``operator``; unknown operators evaluate to False."""
    func = OPERATORS.get(OPERATOR_ALIASES.get(operator, operator))
    if func is None:
        return False
    return bool(func(actual, expected))


class ConditionNodeRunner(NodeRunner):
    type = "logic.condition"
    branching = True
    config_model = ConditionConfig

    def run(
        self,
        context: AutomationContext,
        config: ConditionConfig,
        input: dict[str, Any],
    ) -> NodeResult:
        data = context.to_template_data(input)
        actual = get_value_by_path(data, config.field)
        expected = render_string(config.value, data) if isinstance(config.value, str) else config.value

        result = evaluate(actual, config.operator, expected)
        return NodeResult.ok({
            "condition_result": result,
            "branch": "true" if result else "false",
            "evaluated": {
                "field": config.field,
                "actual_value": actual,
                "operator": config.operator,
                "compare_value": expected,
            },
        })


__all__ = [
    "ConditionConfig",
    "ConditionNodeRunner",
    "OPERATORS",
    "OPERATOR_ALIASES",
    "evaluate",
    "in_list",
    "to_number",
]
