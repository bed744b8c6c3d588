#!/usr/bin/env python3
"""
Fallback Lexical Parser Tests

The quote-aware scanner state machine, field classification and recovery of
INSERT statements whose column and value counts disagree.
"""

import pytest

from core.fallback_parser import FallbackInsertParser, ValueScanner, ScanState, classify_field
from core.sql_types import StatementKind


class TestValueScanner:
    """Quote-aware field splitting."""

    def test_commas_and_escaped_quotes_inside_strings(self):
        fields = ValueScanner().split("'a,b', 2, 'c''d'")
        assert len(fields) == 3
        assert [classify_field(f) for f in fields] == ["a,b", 2, "c'd"]

    def test_double_quoted_strings(self):
        fields = ValueScanner().split('"x, y", "say ""hi"""')
        assert [classify_field(f) for f in fields] == ["x, y", 'say "hi"']

    def test_mixed_quotes_do_not_close_each_other(self):
        fields = ValueScanner().split("'it\"s', \"it's\"")
        assert [classify_field(f) for f in fields] == ['it"s', "it's"]

    def test_nested_parentheses_keep_commas(self):
        fields = ValueScanner().split("1, CONCAT('a', 'b'), 3")
        assert [f.strip() for f in fields] == ["1", "CONCAT('a', 'b')", "3"]

    def test_trailing_blank_field_dropped(self):
        assert ValueScanner().split("1, ") == ["1"]

    def test_empty_middle_field_kept(self):
        assert ValueScanner().split("1,,2") == ["1", "", "2"]

    def test_scanner_returns_to_normal_state(self):
        scanner = ValueScanner()
        scanner.split("'open")
        assert scanner.state == ScanState.IN_SINGLE_QUOTE
        scanner.split("'closed'")
        assert scanner.state == ScanState.NORMAL


class TestClassifyField:
    """Same precedence as value formatting."""

    @pytest.mark.parametrize("text, expected", [
        ("'hello'", "hello"),
        ("'O''Brien'", "O'Brien"),
        ('"quoted"', "quoted"),
        ("TRUE", True),
        ("false", False),
        ("42", 42),
        ("-1.5", -1.5),
        ("NULL", None),
        ("null", None),
        ("NOW()", "NOW()"),
        ("  7  ", 7),
        ("'42'", "42"),
    ])
    def test_classify(self, text, expected):
        result = classify_field(text)
        assert result == expected
        assert type(result) is type(expected)


class TestFallbackInsertParser:
    """Recovering mismatched INSERT statements."""

    def test_extra_values_truncated(self):
        model = FallbackInsertParser().parse("INSERT INTO t (a,b) VALUES (1,'x','y')")
        assert model.kind == StatementKind.INSERT
        assert model.table_name == "t"
        assert model.columns == ["a", "b"]
        assert model.rows == [[1, "x"]]

    def test_missing_values_padded(self):
        model = FallbackInsertParser().parse("INSERT INTO t (a,b,c) VALUES (1,'x')")
        assert model.columns == ["a", "b", "c"]
        assert model.rows == [[1, "x", ""]]

    def test_multiple_rows_and_quoted_names(self):
        statement = "insert into `people` (`name`, \"nick\") values ('Al, Jr', 'al'), ('Bo', 'b', 'extra')"
        model = FallbackInsertParser().parse(statement, "column count doesn't match value count at row 2")
        assert model.table_name == "people"
        assert model.columns == ["name", "nick"]
        assert model.rows == [["Al, Jr", "al"], ["Bo", "b"]]
        assert "column count" in model.raw_fallback_info
        assert model.source_text == statement

    def test_parentheses_inside_literals(self):
        rows = FallbackInsertParser().extract_rows("(1, 'a (b'), (2, 'c)')")
        assert rows == [[1, "a (b"], [2, "c)"]]

    def test_not_an_insert(self):
        assert FallbackInsertParser().parse("UPDATE t SET a = 1") is None
        assert FallbackInsertParser().parse("INSERT INTO t VALUES (1)") is None
