"""
Unit tests for the operator compiler.
Each operator is compiled against alias "c" and checked for SQL text and bound parameters.
"""

import pytest

from query_gateway.query.errors import MissingOperand, UnsafeIdentifier, UnsupportedOperator
from query_gateway.query.operators import OperatorCompiler, escape_like, resolve_operator, to_flag
from query_gateway.query.schemas import FilterOperator, NormalizedFilterTerm


def term(field_name="f", operator=FilterOperator.EQUALS, **operands) -> NormalizedFilterTerm:
    return NormalizedFilterTerm(field_name=field_name, operator=operator, **operands)


@pytest.fixture
def compiler():
    return OperatorCompiler()


class TestComparison:
    def test_equals_scalar(self, compiler):
        predicate = compiler.compile(term(value=5), "c")
        assert predicate.sql == "c.f = ?"
        assert predicate.params == (5,)

    def test_equals_date_is_whole_day_window(self, compiler):
        predicate = compiler.compile(term("trandate", value="2024-06-01"), "t")
        assert predicate.sql == "t.trandate >= ? AND t.trandate < ?"
        assert predicate.params == ("2024-06-01", "2024-06-02")

    def test_equals_normalizes_day_first_dates(self, compiler):
        predicate = compiler.compile(term(value="31-12-2024"), "c")
        assert predicate.params == ("2024-12-31", "2025-01-01")

    def test_equals_impossible_date_compares_as_scalar(self, compiler):
        predicate = compiler.compile(term(value="2023-02-30"), "c")
        assert predicate.sql == "c.f = ?"
        assert predicate.params == ("2023-02-30",)

    def test_equals_boolean_becomes_flag(self, compiler):
        assert compiler.compile(term(value=True), "c").params == ("T",)
        assert compiler.compile(term(value=False), "c").params == ("F",)

    def test_not_equals(self, compiler):
        assert compiler.compile(term(operator=FilterOperator.NOT_EQUALS, value="x"), "c").sql == "c.f != ?"
        predicate = compiler.compile(term(operator=FilterOperator.NOT_EQUALS, value="2024-06-01"), "c")
        assert predicate.sql == "NOT (c.f >= ? AND c.f < ?)"
        assert predicate.params == ("2024-06-01", "2024-06-02")

    @pytest.mark.parametrize(
        "operator, scalar_sql, date_sql, date_param",
        [
            (FilterOperator.GREATER_THAN, "c.f > ?", "c.f >= ?", "2024-06-02"),
            (FilterOperator.LESS_THAN, "c.f < ?", "c.f < ?", "2024-06-01"),
            (FilterOperator.GREATER_THAN_OR_EQUAL, "c.f >= ?", "c.f >= ?", "2024-06-01"),
            (FilterOperator.LESS_THAN_OR_EQUAL, "c.f <= ?", "c.f < ?", "2024-06-02"),
        ],
    )
    def test_ordering_operators(self, compiler, operator, scalar_sql, date_sql, date_param):
        scalar = compiler.compile(term(operator=operator, value=10), "c")
        assert (scalar.sql, scalar.params) == (scalar_sql, (10,))

        dated = compiler.compile(term(operator=operator, value="1-6-2024"), "c")
        assert (dated.sql, dated.params) == (date_sql, (date_param,))

    def test_comparison_requires_value(self, compiler):
        with pytest.raises(MissingOperand):
            compiler.compile(term(operator=FilterOperator.GREATER_THAN), "c")


class TestPattern:
    @pytest.mark.parametrize(
        "operator, keyword, pattern",
        [
            (FilterOperator.CONTAINS, "LIKE", "%acme%"),
            (FilterOperator.STARTS_WITH, "LIKE", "acme%"),
            (FilterOperator.ENDS_WITH, "LIKE", "%acme"),
            (FilterOperator.NOT_CONTAINS, "NOT LIKE", "%acme%"),
        ],
    )
    def test_wildcards(self, compiler, operator, keyword, pattern):
        predicate = compiler.compile(term("name", operator, value="acme"), "c")
        assert predicate.sql == f"c.name {keyword} ? ESCAPE '\\'"
        assert predicate.params == (pattern,)

    def test_wildcards_in_operand_are_escaped(self, compiler):
        predicate = compiler.compile(term(operator=FilterOperator.CONTAINS, value="100%_a\\b"), "c")
        assert predicate.params == ("%100\\%\\_a\\\\b%",)

    def test_empty_string_is_a_present_operand(self, compiler):
        assert compiler.compile(term(operator=FilterOperator.CONTAINS, value=""), "c").params == ("%%",)

    def test_missing_operand(self, compiler):
        with pytest.raises(MissingOperand):
            compiler.compile(term(operator=FilterOperator.STARTS_WITH), "c")


class TestMembership:
    def test_in_list(self, compiler):
        predicate = compiler.compile(term(operator=FilterOperator.IN, values=(1, 2, 3)), "c")
        assert predicate.sql == "c.f IN (?, ?, ?)"
        assert predicate.params == (1, 2, 3)

    def test_not_in_falls_back_to_list_value(self, compiler):
        predicate = compiler.compile(term(operator=FilterOperator.NOT_IN, value=["a", "b"]), "c")
        assert predicate.sql == "c.f NOT IN (?, ?)"
        assert predicate.params == ("a", "b")

    @pytest.mark.parametrize("operands", [{"values": ()}, {}, {"value": []}, {"value": "a"}])
    def test_empty_or_missing_list_is_rejected(self, compiler, operands):
        with pytest.raises(MissingOperand):
            compiler.compile(term(operator=FilterOperator.IN, **operands), "c")


class TestNullAndFlags:
    def test_null_checks_take_no_operand(self, compiler):
        assert compiler.compile(term(operator=FilterOperator.IS_NULL), "c").sql == "c.f IS NULL"
        predicate = compiler.compile(term(operator=FilterOperator.IS_NOT_NULL, value="ignored"), "c")
        assert (predicate.sql, predicate.params) == ("c.f IS NOT NULL", ())

    def test_boolean_flags(self, compiler):
        assert compiler.compile(term(operator=FilterOperator.IS_TRUE), "c").params == ("T",)
        assert compiler.compile(term(operator=FilterOperator.IS_FALSE), "c").params == ("F",)

    @pytest.mark.parametrize("raw, flag", [("t", "T"), ("TRUE", "T"), (1, "T"), ("yes", "T"), ("no", "F"), (0, "F")])
    def test_to_flag(self, raw, flag):
        assert to_flag(raw) == flag


class TestExplicitDates:
    def test_date_range_is_inclusive_of_end_day(self, compiler):
        predicate = compiler.compile(
            term(operator=FilterOperator.DATE_RANGE, start_date="01-01-2024", end_date="31-12-2024"), "c"
        )
        assert predicate.sql == "c.f >= ? AND c.f < ?"
        assert predicate.params == ("2024-01-01", "2025-01-01")

    def test_date_range_requires_both_bounds(self, compiler):
        with pytest.raises(MissingOperand):
            compiler.compile(term(operator=FilterOperator.DATE_RANGE, start_date="2024-01-01"), "c")

    def test_date_equals_before_after(self, compiler):
        equals = compiler.compile(term(operator=FilterOperator.DATE_EQUALS, value="2024-06-01"), "c")
        assert equals.params == ("2024-06-01", "2024-06-02")

        before = compiler.compile(term(operator=FilterOperator.DATE_BEFORE, value="2024-06-01"), "c")
        assert (before.sql, before.params) == ("c.f < ?", ("2024-06-01",))

        after = compiler.compile(term(operator=FilterOperator.DATE_AFTER, value="2024-06-01"), "c")
        assert (after.sql, after.params) == ("c.f >= ?", ("2024-06-02",))

    def test_explicit_date_operators_reject_non_dates(self, compiler):
        with pytest.raises(MissingOperand):
            compiler.compile(term(operator=FilterOperator.DATE_BEFORE, value="soon"), "c")

    def test_date_placeholder_template(self):
        compiler = OperatorCompiler(date_placeholder="TO_DATE(?, 'YYYY-MM-DD')")
        predicate = compiler.compile(term(value="2024-06-01"), "t")
        assert predicate.sql == "t.f >= TO_DATE(?, 'YYYY-MM-DD') AND t.f < TO_DATE(?, 'YYYY-MM-DD')"
        assert predicate.params == ("2024-06-01", "2024-06-02")

        # Scalar comparisons keep the plain placeholder
        assert compiler.compile(term(value=1), "t").sql == "t.f = ?"

    def test_placeholder_template_needs_one_placeholder(self):
        with pytest.raises(ValueError):
            OperatorCompiler(date_placeholder="TO_DATE(:d)")


class TestOperatorTokens:
    @pytest.mark.parametrize(
        "token, operator",
        [
            ("=", FilterOperator.EQUALS),
            ("!=", FilterOperator.NOT_EQUALS),
            ("<>", FilterOperator.NOT_EQUALS),
            (">=", FilterOperator.GREATER_THAN_OR_EQUAL),
            ("<", FilterOperator.LESS_THAN),
            ("Starts_With", FilterOperator.STARTS_WITH),
            (" in ", FilterOperator.IN),
        ],
    )
    def test_resolve_operator(self, token, operator):
        assert resolve_operator(token) == operator

    @pytest.mark.parametrize("token", ["between", "", None, "==", "LIKE"])
    def test_unknown_tokens(self, token):
        with pytest.raises(UnsupportedOperator):
            resolve_operator(token)

    def test_escape_like(self):
        assert escape_like("a%b_c\\d") == "a\\%b\\_c\\\\d"


class TestIdentifiers:
    @pytest.mark.parametrize("field_name", ["bad field", "x;drop", "x--", "1abc", ""])
    def test_unsafe_field_names(self, compiler, field_name):
        with pytest.raises(UnsafeIdentifier):
            compiler.compile(term(field_name, value=1), "c")

    def test_compile_all_keeps_order(self, compiler):
        predicates = compiler.compile_all([term("a", value=1), term("b", value=2)], "c")
        assert [predicate.sql for predicate in predicates] == ["c.a = ?", "c.b = ?"]
