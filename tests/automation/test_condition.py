"""Tests for the ``logic.condition`` runner and its operators."""

from __future__ import annotations

import pytest

from autoflow.automation.runners.condition import (
    ConditionConfig,
    ConditionNodeRunner,
    evaluate,
    in_list,
    to_number,
)
from autoflow.core.errors import InvalidNodeConfigError


# ── Operators ────────────────────────────────────────────────────────────


class TestEquality:
    def test_strict_equals(self):
        assert evaluate("a", "equals", "a")
        assert evaluate(1, "==", 1)

    def test_strict_equals_requires_same_type(self):
        assert not evaluate(1, "equals", 1.0)
        assert not evaluate(True, "equals", 1)
        assert not evaluate(150, "equals", "150")

    def test_not_equals(self):
        assert evaluate(1, "not_equals", "1")
        assert not evaluate("a", "!=", "a")


class TestStringOperators:
    @pytest.mark.parametrize(
        "operator, actual, expected, result",
        [
            ("contains", "hello world", "lo w", True),
            ("contains", 123, "2", False),
            ("not_contains", "hello", "z", True),
            ("not_contains", None, "z", False),
            ("starts_with", "INV-1", "INV", True),
            ("ends_with", "INV-1", "-1", True),
            ("ends_with", "INV-1", "INV", False),
        ],
    )
    def test_string_operators(self, operator, actual, expected, result):
        assert evaluate(actual, operator, expected) is result


class TestNumericOperators:
    def test_numeric_strings_count(self):
        assert evaluate("150", "greater_than", "100")
        assert evaluate(150, ">", "100.5")
        assert evaluate("99.9", "<", 100)

    def test_boundaries(self):
        assert evaluate(100, ">=", "100")
        assert evaluate(100, "<=", 100.0)
        assert not evaluate(100, ">", 100)

    def test_non_numeric_is_false(self):
        assert not evaluate("abc", "greater_than", 1)
        assert not evaluate(None, "less_than", 1)
        assert not evaluate(True, "greater_than", 0)

    def test_to_number(self):
        assert to_number(" 12.5 ") == 12.5
        assert to_number("1e3") == 1000.0
        assert to_number(False) is None
        assert to_number("12abc") is None


class TestEmptinessOperators:
    @pytest.mark.parametrize("value", [None, "", [], {}, 0, 0.0, False])
    def test_empty_values(self, value):
        assert evaluate(value, "is_empty", None)
        assert not evaluate(value, "is_not_empty", None)

    @pytest.mark.parametrize("value", ["0", " ", [0], 1, True])
    def test_non_empty_values(self, value):
        assert evaluate(value, "is_not_empty", None)

    def test_null_checks(self):
        assert evaluate(None, "is_null", None)
        assert not evaluate("", "is_null", None)
        assert evaluate(0, "is_not_null", None)


class TestListAndRegex:
    def test_in_list_comma_string(self):
        assert in_list("b", "a, b, c")
        assert not in_list("d", "a, b, c")

    def test_in_list_loose_membership(self):
        assert in_list(2, ["1", "2"])
        assert in_list("2", [1, 2])
        assert not in_list(None, ["None"])

    def test_not_in_list(self):
        assert evaluate("x", "not_in_list", "a,b")
        assert not evaluate("a", "not_in_list", "a,b")

    def test_in_list_non_list_operand(self):
        assert not in_list("a", 5)

    def test_regex(self):
        assert evaluate("INV-0042", "regex", r"^INV-\d+$")
        assert evaluate("Hello", "regex", "/^hello$/i")
        assert not evaluate("Hello", "regex", "/^hello$/")

    def test_invalid_regex_is_false(self):
        assert not evaluate("abc", "regex", "(")
        assert not evaluate(5, "regex", "5")

    def test_unknown_operator_is_false(self):
        assert not evaluate("a", "sounds_like", "a")


# ── Runner ───────────────────────────────────────────────────────────────


class TestConditionNodeRunner:
    def test_true_branch_from_input(self, invoice_context):
        runner = ConditionNodeRunner()
        result = runner.execute(
            invoice_context,
            {"field": "{{amount}}", "operator": "greater_than", "value": "100"},
            {"amount": 150},
        )
        assert result.success
        assert result.output["condition_result"] is True
        assert result.output["branch"] == "true"
        assert result.output["evaluated"] == {
            "field": "{{amount}}",
            "actual_value": 150,
            "operator": "greater_than",
            "compare_value": "100",
        }

    def test_in_list_scenario(self, invoice_context):
        result = ConditionNodeRunner().execute(
            invoice_context,
            {"field": "letter", "operator": "in_list", "value": "a, b, c"},
            {"letter": "b"},
        )
        assert result.output["condition_result"] is True

    def test_false_branch_against_subject(self, invoice_context):
        result = ConditionNodeRunner().execute(
            invoice_context,
            {"field": "invoice.status", "operator": "equals", "value": "paid"},
            {},
        )
        assert result.success
        assert result.output["branch"] == "false"

    def test_value_is_rendered(self, invoice_context):
        result = ConditionNodeRunner().execute(
            invoice_context,
            {"field": "contact.name", "operator": "equals", "value": "{{ contact.name }}"},
            {},
        )
        assert result.output["evaluated"]["compare_value"] == "Ana Lima"
        assert result.output["condition_result"] is True

    def test_non_string_value_not_rendered(self, invoice_context):
        result = ConditionNodeRunner().execute(
            invoice_context,
            {"field": "n", "operator": "in_list", "value": [1, 2]},
            {"n": 2},
        )
        assert result.output["evaluated"]["compare_value"] == [1, 2]
        assert result.output["condition_result"] is True

    def test_defaults(self):
        config = ConditionNodeRunner().parse_config({})
        assert config == ConditionConfig(field="", operator="equals", value="")

    def test_invalid_config(self):
        with pytest.raises(InvalidNodeConfigError) as exc_info:
            ConditionNodeRunner().parse_config({"field": ["not", "a", "string"]})
        assert "field" in exc_info.value.details

    def test_is_branching(self):
        assert ConditionNodeRunner.branching is True
        assert ConditionNodeRunner().node_type == "logic.condition"
