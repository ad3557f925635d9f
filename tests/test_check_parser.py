"""Tests for CHECK constraint enum parsing."""

import pytest

from db_export.catalog.check_parser import CheckEnum, parse_enum_check, wraps_whole


class TestParseEnumCheck:
    """Tests for parse_enum_check."""

    def test_postgres_normalized_form(self):
        """Test the form pg_get_constraintdef returns."""
        result = parse_enum_check("CHECK ((status = ANY (ARRAY['draft'::text, 'published'::text])))")

        assert result == CheckEnum(column="status", values=["draft", "published"])

    def test_bare_any_array(self):
        """Test the clause without CHECK keyword or casts."""
        result = parse_enum_check("status = ANY (ARRAY['a','b'])")

        assert result.column == "status"
        assert result.values == ["a", "b"]

    def test_cast_on_array(self):
        """Test varchar columns, where the cast wraps the whole array."""
        clause = "((priority)::text = ANY ((ARRAY['low'::character varying, 'high'::character varying])::text[]))"
        result = parse_enum_check(clause)

        assert result.column == "priority"
        assert result.values == ["low", "high"]

    def test_in_list(self):
        """Test standard IN lists."""
        result = parse_enum_check("CHECK (kind IN ('x', 'y', 'z'))")

        assert result.column == "kind"
        assert result.values == ["x", "y", "z"]

    def test_quoted_identifier(self):
        """Test quoted column names."""
        result = parse_enum_check("(\"Order Status\" = ANY (ARRAY['open'::text, 'closed'::text]))")

        assert result.column == "Order Status"

    def test_escaped_quote_in_value(self):
        """Test doubled single quotes inside values."""
        result = parse_enum_check("name IN ('it''s', 'plain')")

        assert result.values == ["it's", "plain"]

    def test_not_valid_suffix(self):
        """Test that NOT VALID from pg_get_constraintdef is ignored."""
        result = parse_enum_check("CHECK ((status = ANY (ARRAY['a'::text, 'b'::text]))) NOT VALID")

        assert result.values == ["a", "b"]

    def test_values_keep_declaration_order(self):
        """Test that values are not sorted or deduplicated."""
        result = parse_enum_check("level = ANY (ARRAY['z', 'a', 'm'])")

        assert result.values == ["z", "a", "m"]

    @pytest.mark.parametrize("clause", [
        None,
        "",
        "CHECK ((price > (0)::numeric))",
        "CHECK ((char_length(title) <= 200))",
        "CHECK (((status = 'a'::text) OR (status = 'b'::text)))",
        "CHECK ((qty = ANY (ARRAY[1, 2, 3])))",
        "CHECK ((start_date < end_date))",
    ])
    def test_non_enum_clauses(self, clause):
        """Test that anything outside the allowed-value grammar yields None."""
        assert parse_enum_check(clause) is None


class TestWrapsWhole:
    """Tests for wraps_whole."""

    def test_single_group(self):
        assert wraps_whole("(a = b)")

    def test_two_groups(self):
        assert not wraps_whole("(a) AND (b)")

    def test_parenthesis_inside_literal(self):
        assert wraps_whole("(name = ')')")
