"""Unit tests for SQL placeholder handling.

Tests the public API:
- standardize_placeholders(sql, placeholder) - Convert %s <-> ?
- count_placeholders(sql) - Positional placeholders outside literals
- has_placeholders(sql) / has_named_placeholders(sql)
- tokenize_sql(sql) - Token stream
"""
import pytest
from sqlqueue.sql import TokenType, count_placeholders, has_named_placeholders
from sqlqueue.sql import has_placeholders, standardize_placeholders, tokenize_sql


class TestStandardizePlaceholders:

    @pytest.mark.parametrize(('sql', 'placeholder', 'expected'), [
        ('SELECT * FROM t WHERE a = %s AND b = ?', '?',
         'SELECT * FROM t WHERE a = ? AND b = ?'),
        ('SELECT * FROM t WHERE a = %s AND b = ?', '%s',
         'SELECT * FROM t WHERE a = %s AND b = %s'),
        ("SELECT 'what?' FROM t WHERE a = %s", '?',
         "SELECT 'what?' FROM t WHERE a = ?"),
        ("SELECT 'rate %s' FROM t WHERE a = ?", '?',
         "SELECT 'rate %s' FROM t WHERE a = ?"),
        ('SELECT a -- why?\nFROM t WHERE b = %s', '?',
         'SELECT a -- why?\nFROM t WHERE b = ?'),
        ('SELECT a /* ? */ FROM t', '%s', 'SELECT a /* ? */ FROM t'),
        ('', '?', ''),
    ])
    def test_conversion(self, sql, placeholder, expected):
        assert standardize_placeholders(sql, placeholder) == expected

    def test_format_style_escapes_percent_in_literals_with_params(self):
        sql = "SELECT * FROM t WHERE name LIKE 'a%' AND id = ?"
        assert standardize_placeholders(sql) == \
            "SELECT * FROM t WHERE name LIKE 'a%%' AND id = %s"

    def test_format_style_keeps_percent_without_params(self):
        sql = "SELECT * FROM t WHERE name LIKE 'a%'"
        assert standardize_placeholders(sql) == sql

    def test_qmark_style_keeps_percent(self):
        sql = "SELECT * FROM t WHERE name LIKE 'a%' AND id = %s"
        assert standardize_placeholders(sql, '?') == \
            "SELECT * FROM t WHERE name LIKE 'a%' AND id = ?"


class TestCountPlaceholders:

    @pytest.mark.parametrize(('sql', 'count'), [
        ('INSERT INTO t VALUES (?, ?, ?)', 3),
        ('INSERT INTO t VALUES (%s, %s)', 2),
        ("SELECT '?', '%s' FROM t", 0),
        ('SELECT 1', 0),
        ('', 0),
        (None, 0),
    ])
    def test_count(self, sql, count):
        assert count_placeholders(sql) == count
        assert has_placeholders(sql) is (count > 0)


class TestNamedPlaceholders:

    @pytest.mark.parametrize(('sql', 'named'), [
        ('SELECT * FROM t WHERE a = %(a)s', True),
        ('SELECT * FROM t WHERE a = :a', True),
        ('SELECT a::int FROM t', False),
        ("SELECT '12:30' FROM t", False),
        ('SELECT * FROM t WHERE a = ?', False),
        (None, False),
    ])
    def test_detection(self, sql, named):
        assert has_named_placeholders(sql) is named


def test_tokenize_covers_input():
    sql = "SELECT 'x' -- c\nFROM t WHERE a = ? AND b = :b"
    tokens = tokenize_sql(sql)
    assert ''.join(t.text for t in tokens) == sql
    kinds = [t.type for t in tokens]
    assert TokenType.STRING_LITERAL in kinds
    assert TokenType.COMMENT in kinds
    assert TokenType.POSITIONAL_PH in kinds
    assert TokenType.NAMED_PH in kinds


if __name__ == '__main__':
    __import__('pytest').main([__file__])
