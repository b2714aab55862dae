"""
Unit tests for the filter-to-predicate compiler.

Tests conjunct ordering, IN-list rendering, escaping, the always-true
fallback and the custom filter guard.
"""

import pytest

from flow_query import (
    FilterState,
    TimeRange,
    UnsafeFilterError,
    WhereClauseBuilder,
    compile_where_clause,
    validate_custom_filter,
)
from flow_query.predicate import (
    escape_identifier,
    escape_string,
    is_valid_column_name,
)


class TestCompileWhereClause:
    """Test cases for compile_where_clause."""

    def test_empty_filter_state(self):
        """Test that an empty filter compiles to the always-true predicate."""
        assert compile_where_clause(FilterState()) == "1=1"

    def test_src_ips_single_field(self):
        """Test a single populated field yields exactly its conjunct."""
        filters = FilterState(src_ips=["59.166.0.2", "59.166.0.4"])
        where = compile_where_clause(filters)

        assert where == "IPV4_SRC_ADDR IN ('59.166.0.2', '59.166.0.4')"
        assert " AND " not in where

    def test_dst_ips(self):
        """Test destination IPs bind to IPV4_DST_ADDR."""
        filters = FilterState(dst_ips=["149.171.126.6"])
        assert compile_where_clause(filters) == "IPV4_DST_ADDR IN ('149.171.126.6')"

    def test_attack_types(self):
        """Test attack labels are quoted strings on the Attack column."""
        filters = FilterState(attack_types=["Exploits", "DoS"])
        assert compile_where_clause(filters) == "Attack IN ('Exploits', 'DoS')"

    def test_integer_lists_unquoted(self):
        """Test protocol and port lists render unquoted."""
        assert compile_where_clause(FilterState(protocols=[6, 17])) == "PROTOCOL IN (6, 17)"
        assert compile_where_clause(FilterState(l7_protocols=[7])) == "L7_PROTO IN (7)"
        assert compile_where_clause(FilterState(src_ports=[1043])) == "L4_SRC_PORT IN (1043)"
        assert compile_where_clause(FilterState(dst_ports=[53, 80])) == "L4_DST_PORT IN (53, 80)"

    def test_time_range_both_sides(self):
        """Test both time bounds become separate conjuncts."""
        filters = FilterState(time_range=TimeRange(start=1424242190000, end=1424242200000))
        where = compile_where_clause(filters)

        assert where == (
            "FLOW_START_MILLISECONDS >= 1424242190000 AND "
            "FLOW_END_MILLISECONDS <= 1424242200000"
        )

    def test_time_range_start_only(self):
        """Test an open end bound is skipped."""
        filters = FilterState(time_range=TimeRange(start=1424242190000))
        assert compile_where_clause(filters) == "FLOW_START_MILLISECONDS >= 1424242190000"

    def test_time_range_end_only(self):
        """Test an open start bound is skipped."""
        filters = FilterState(time_range=TimeRange(end=1424242200000))
        assert compile_where_clause(filters) == "FLOW_END_MILLISECONDS <= 1424242200000"

    def test_custom_filter_wrapping(self):
        """Test the custom filter is wrapped verbatim in parentheses."""
        filters = FilterState(custom_filter="IN_BYTES > 1024 AND L7_PROTO = 5")
        assert compile_where_clause(filters) == "(IN_BYTES > 1024 AND L7_PROTO = 5)"

    def test_blank_custom_filter_ignored(self):
        """Test a whitespace-only custom filter contributes nothing."""
        assert compile_where_clause(FilterState(custom_filter="   ")) == "1=1"
        assert compile_where_clause(FilterState(custom_filter="")) == "1=1"

    def test_conjunct_count(self):
        """Test N populated fields produce N-1 AND separators."""
        filters = FilterState(
            time_range=TimeRange(start=1, end=2),
            src_ips=["10.0.0.1"],
            dst_ips=["10.0.0.2"],
            attack_types=["Generic"],
            protocols=[6],
            l7_protocols=[7],
            src_ports=[1234],
            dst_ports=[80],
            custom_filter="IN_PKTS > 1",
        )
        where = compile_where_clause(filters)

        assert where.count(" AND ") == 8

    def test_field_order(self):
        """Test conjuncts follow the fixed field order."""
        filters = FilterState(
            custom_filter="IN_PKTS > 1",
            protocols=[17],
            attack_types=["Fuzzers"],
            dst_ips=["10.0.0.2"],
            src_ips=["10.0.0.1"],
            time_range=TimeRange(start=100, end=200),
        )
        where = compile_where_clause(filters)

        assert where == (
            "FLOW_START_MILLISECONDS >= 100 AND "
            "FLOW_END_MILLISECONDS <= 200 AND "
            "IPV4_SRC_ADDR IN ('10.0.0.1') AND "
            "IPV4_DST_ADDR IN ('10.0.0.2') AND "
            "Attack IN ('Fuzzers') AND "
            "PROTOCOL IN (17) AND "
            "(IN_PKTS > 1)"
        )

    def test_order_preserved_within_list(self):
        """Test IN-list elements keep their given order."""
        forward = compile_where_clause(FilterState(src_ips=["10.0.0.1", "10.0.0.2"]))
        backward = compile_where_clause(FilterState(src_ips=["10.0.0.2", "10.0.0.1"]))

        assert forward == "IPV4_SRC_ADDR IN ('10.0.0.1', '10.0.0.2')"
        assert backward == "IPV4_SRC_ADDR IN ('10.0.0.2', '10.0.0.1')"

    def test_deterministic(self):
        """Test repeated compilation is byte-identical."""
        filters = FilterState(src_ips=["10.0.0.1"], protocols=[6], custom_filter="1 = 1")
        assert compile_where_clause(filters) == compile_where_clause(filters)

    def test_quotes_escaped_in_string_values(self):
        """Test embedded single quotes cannot close the literal."""
        filters = FilterState(attack_types=["x') OR ('1'='1"])
        where = compile_where_clause(filters)

        assert where == "Attack IN ('x'') OR (''1''=''1')"

    def test_result_count_ignored(self):
        """Test the informational result count never reaches the predicate."""
        assert compile_where_clause(FilterState(result_count=42)) == "1=1"

    def test_from_camel_case_dict(self):
        """Test compiling a state received in the UI wire format."""
        filters = FilterState.from_dict({
            "timeRange": {"start": 1424242190000, "end": None},
            "srcIps": ["59.166.0.2"],
            "attackTypes": [],
            "customFilter": None,
        })
        where = compile_where_clause(filters)

        assert where == (
            "FLOW_START_MILLISECONDS >= 1424242190000 AND "
            "IPV4_SRC_ADDR IN ('59.166.0.2')"
        )


    def test_float_time_bound_rendered_as_integer(self):
        """Test a JSON float time bound compiles as an integer literal."""
        filters = FilterState.from_dict({"timeRange": {"start": 1.0e12, "end": 2.5e12}})

        assert compile_where_clause(filters) == (
            "FLOW_START_MILLISECONDS >= 1000000000000 AND "
            "FLOW_END_MILLISECONDS <= 2500000000000"
        )

    def test_nan_time_bound_rejected(self):
        """Test a NaN time bound is rejected instead of compiled."""
        with pytest.raises(ValueError):
            FilterState.from_dict({"timeRange": {"start": float("nan")}})

class TestWhereClauseBuilder:
    """Test cases for the WhereClauseBuilder."""

    def test_empty_builder(self):
        """Test an empty builder returns 1=1."""
        builder = WhereClauseBuilder()
        assert builder.build() == "1=1"
        assert not builder.has_conditions()
        assert builder.condition_count() == 0

    def test_chaining(self):
        """Test methods chain and accumulate conditions."""
        builder = (WhereClauseBuilder()
                   .add_in_clause("IPV4_SRC_ADDR", ["10.0.0.1"])
                   .add_range("IN_BYTES", 10, 20))

        assert builder.condition_count() == 3
        assert builder.build() == (
            "IPV4_SRC_ADDR IN ('10.0.0.1') AND IN_BYTES >= 10 AND IN_BYTES <= 20"
        )

    def test_empty_in_clause_skipped(self):
        """Test an empty value list adds nothing."""
        assert WhereClauseBuilder().add_in_clause("PROTOCOL", []).build() == "1=1"

    def test_add_like(self):
        """Test LIKE patterns are wrapped and escaped."""
        where = WhereClauseBuilder().add_like("Attack", "50%_x").build()
        assert where == "Attack LIKE '%50\\%\\_x%'"

    def test_add_like_blank(self):
        """Test a blank LIKE pattern is skipped."""
        assert WhereClauseBuilder().add_like("Attack", " ").build() == "1=1"

    def test_add_condition(self):
        """Test a comparison with a quoted string value."""
        where = WhereClauseBuilder().add_condition("Attack", "!=", "Benign").build()
        assert where == "Attack != 'Benign'"

    def test_add_condition_invalid_operator(self):
        """Test unknown operators are rejected."""
        with pytest.raises(ValueError, match="Invalid operator"):
            WhereClauseBuilder().add_condition("PROTOCOL", "; DROP", 6)


class TestEscaping:
    """Test cases for the escaping helpers."""

    def test_escape_string(self):
        """Test quotes and backslashes are doubled."""
        assert escape_string("O'Brien") == "O''Brien"
        assert escape_string("a\\b") == "a\\\\b"

    def test_escape_identifier(self):
        """Test identifiers are double-quoted."""
        assert escape_identifier('my "col"') == '"my ""col"""'

    def test_valid_column_names(self):
        """Test bare column name validation."""
        assert is_valid_column_name("IPV4_SRC_ADDR")
        assert is_valid_column_name("flows")
        assert not is_valid_column_name("DROP")
        assert not is_valid_column_name("my column")
        assert not is_valid_column_name("")


class TestValidateCustomFilter:
    """Test cases for the custom filter guard."""

    def test_accepts_plain_predicate(self):
        """Test an ordinary boolean expression passes."""
        validate_custom_filter("IN_BYTES > 1024 AND L7_PROTO = 5")

    @pytest.mark.parametrize("condition", [
        "1=1; DROP TABLE flows",
        "1=1 UNION SELECT * FROM secrets",
        "PROTOCOL = 6 -- comment",
        "PROTOCOL = 6 /* x */",
        "Attack = '' OR '1'='1'",
        "DELETE FROM flows",
    ])
    def test_rejects_injection(self, condition):
        """Test known injection patterns are refused."""
        with pytest.raises(UnsafeFilterError):
            validate_custom_filter(condition)
