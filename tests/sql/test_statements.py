# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for sql.statements module - identifier quoting and statement builders."""

from __future__ import annotations

import pytest

from genro_persistence.sql.statements import (
    RawSql,
    bind_params,
    compose_count,
    compose_select,
    ensure_raw,
    generate_columns,
    generate_parameters,
    generate_set_parameters,
    generate_values,
    quote_identifier,
    quote_table,
)


class TestQuoting:
    """Tests for quote_identifier and quote_table."""

    def test_plain_name_is_quoted(self):
        assert quote_identifier("key") == '"key"'

    def test_quoted_name_unchanged(self):
        assert quote_identifier('"Key"') == '"Key"'

    def test_expression_unchanged(self):
        """Parenthesized expressions (e.g. JSON index keys) pass through."""
        assert quote_identifier("(data->>'key')") == "(data->>'key')"

    def test_empty_name_unchanged(self):
        assert quote_identifier("") == ""
        assert quote_identifier(None) is None

    def test_table_with_schema(self):
        assert quote_table("dummies") == '"dummies"'
        assert quote_table("dummies", "test") == '"test"."dummies"'


class TestGenerators:
    """Tests for column, parameter and SET clause generation."""

    row = {"id": "1", "key": "Key 1", "content": "Content 1"}

    def test_generate_columns(self):
        assert generate_columns(self.row) == '"id","key","content"'

    def test_generate_parameters(self):
        assert generate_parameters(self.row) == "@Param1,@Param2,@Param3"

    def test_generate_parameters_with_offset(self):
        assert generate_parameters(["a", "b"], start=4) == "@Param4,@Param5"

    def test_generate_set_parameters(self):
        assert generate_set_parameters(self.row) == '"id"=@Param1,"key"=@Param2,"content"=@Param3'

    def test_generate_values_follows_column_order(self):
        assert generate_values(self.row) == ["1", "Key 1", "Content 1"]

    def test_bind_params(self):
        assert bind_params(["a", None]) == {"Param1": "a", "Param2": None}
        assert bind_params(["a"], start=3) == {"Param3": "a"}


class TestRawSql:
    """Tests for RawSql fragments."""

    def test_params_stored_as_tuple(self):
        fragment = RawSql('"key"=@Param1', ["Key 1"])
        assert fragment.params == ("Key 1",)
        assert str(fragment) == '"key"=@Param1'

    def test_renumber_shifts_markers(self):
        fragment = RawSql('"a"=@Param1 OR "b"=@Param2', [1, 2]).renumber(3)
        assert fragment.text == '"a"=@Param4 OR "b"=@Param5'
        assert fragment.params == (1, 2)

    def test_renumber_without_params_is_identity(self):
        fragment = RawSql('"key" DESC')
        assert fragment.renumber(5) is fragment

    def test_ensure_raw_rejects_plain_strings(self):
        with pytest.raises(TypeError, match="RawSql"):
            ensure_raw("key='x'", "filter")  # type: ignore[arg-type]

    def test_ensure_raw_accepts_none_and_empty(self):
        assert ensure_raw(None) is None
        assert ensure_raw(RawSql("")) is None


class TestCompose:
    """Tests for SELECT and COUNT composition."""

    def test_select_all(self):
        query, values = compose_select('"dummies"')
        assert query == 'SELECT * FROM "dummies"'
        assert values == []

    def test_select_with_filter_and_sort(self):
        query, values = compose_select(
            '"dummies"',
            '"id","key"',
            RawSql('"key"=@Param1', ["Key 1"]),
            RawSql("CASE WHEN \"content\"=@Param1 THEN 0 ELSE 1 END", ["x"]),
        )
        assert query == (
            'SELECT "id","key" FROM "dummies" WHERE "key"=@Param1'
            ' ORDER BY CASE WHEN "content"=@Param2 THEN 0 ELSE 1 END'
        )
        assert values == ["Key 1", "x"]

    def test_count(self):
        query, values = compose_count('"dummies"', RawSql('"key"=@Param1', ["Key 1"]))
        assert query == 'SELECT COUNT(*) AS count FROM "dummies" WHERE "key"=@Param1'
        assert values == ["Key 1"]
