"""Unit tests for SQL placeholder rewriting and identifier quoting.

Tests the public API:
- standardize_placeholders(sql, args, paramstyle) - rewrite ?, %s and $n
- tokenize_sql(sql) - single pass scanner
- quote_identifier(name, dialect) - quote table/column names
"""
import pytest
from recordmap.exceptions import ValidationError
from recordmap.sql import TokenType, quote_identifier, standardize_placeholders
from recordmap.sql import tokenize_sql


class TestStandardizePlaceholders:
    """Test placeholder conversion between styles."""

    @pytest.mark.parametrize(('sql', 'paramstyle', 'expected'), [
        ('select * from t where a = ? and b = ?', '%s', 'select * from t where a = %s and b = %s'),
        ('select * from t where a = %s and b = %s', '?', 'select * from t where a = ? and b = ?'),
        ('select * from t where a = $1 and b = $2', '?', 'select * from t where a = ? and b = ?'),
        ('select * from t where a = $1 and b = $2', '%s', 'select * from t where a = %s and b = %s'),
        ('select * from t where a = ?', '?', 'select * from t where a = ?'),
    ], ids=['qmark_to_format', 'format_to_qmark', 'numbered_to_qmark', 'numbered_to_format', 'unchanged'])
    def test_conversion(self, sql, paramstyle, expected):
        result, _ = standardize_placeholders(sql, (1, 2), paramstyle)
        assert result == expected

    def test_numbered_reorders_args(self):
        """Test that $n arguments follow their position in the text."""
        sql, args = standardize_placeholders('select $2, $1, $2', ('a', 'b'), '?')
        assert sql == 'select ?, ?, ?'
        assert args == ('b', 'a', 'b')

    def test_positional_args_unchanged(self):
        _, args = standardize_placeholders('select ?, ?', ['a', 'b'], '%s')
        assert args == ('a', 'b')

    def test_mixed_styles_rejected(self):
        with pytest.raises(ValidationError, match='Cannot mix'):
            standardize_placeholders('select $1, ?', (1, 2), '?')

    def test_numbered_out_of_range(self):
        with pytest.raises(ValidationError):
            standardize_placeholders('select $3', (1, 2), '?')

    def test_placeholders_in_literals_ignored(self):
        """Test that ? and $1 inside strings and quoted identifiers stay as text."""
        sql = 'select \'?\', "col?", $1 from t'
        result, args = standardize_placeholders(sql, (5,), '%s')
        assert result == 'select \'?\', "col?", %s from t'
        assert args == (5,)

    def test_placeholders_in_comments_ignored(self):
        """Test that ? and % inside line and block comments are not bound."""
        sql = 'select 1 -- why?\n where x = ? /* 5% of $1 */'
        result, args = standardize_placeholders(sql, (1,), '%s')
        assert result == 'select 1 -- why?\n where x = %s /* 5%% of $1 */'
        assert args == (1,)

    def test_comment_without_newline(self):
        result, _ = standardize_placeholders('select ? -- trailing ?', (1,), '%s')
        assert result == 'select %s -- trailing ?'

    def test_percent_escaped_for_format_style(self):
        """Test that literal percent signs are doubled when args are bound."""
        result, _ = standardize_placeholders("select * from t where a like 'x%' and b = ?", (1,), '%s')
        assert result == "select * from t where a like 'x%%' and b = %s"

    def test_percent_untouched_without_args(self):
        sql = "select * from t where a like 'x%'"
        assert standardize_placeholders(sql, (), '%s') == (sql, ())

    def test_percent_untouched_for_qmark(self):
        sql = "select * from t where a like 'x%' and b = ?"
        result, _ = standardize_placeholders(sql, (1,), '?')
        assert result == sql

    def test_empty_sql(self):
        assert standardize_placeholders('', (), '?') == ('', ())


class TestTokenize:
    """Test the SQL scanner."""

    def test_tokens_preserve_text(self):
        sql = "update \"t\" set a = $1, b = 'it''s' where c = ? and d like '5%%'"
        assert ''.join(t.text for t in tokenize_sql(sql)) == sql

    def test_token_types(self):
        tokens = tokenize_sql("select $2, ?, 'lit', `ident`")
        types = [t.type for t in tokens if t.type != TokenType.SQL_TEXT]
        assert types == [TokenType.NUMBERED_PH, TokenType.POSITIONAL_PH,
                         TokenType.STRING_LITERAL, TokenType.QUOTED_IDENT]
        assert tokens[1].number == 2


class TestQuoteIdentifier:
    """Test identifier quoting per dialect."""

    @pytest.mark.parametrize(('name', 'dialect', 'expected'), [
        ('person', 'postgresql', '"person"'),
        ('FName', 'sqlite', '"FName"'),
        ('odd"name', 'postgresql', '"odd""name"'),
        ('person', 'mysql', '`person`'),
        ('odd`name', 'mysql', '`odd``name`'),
    ])
    def test_quote(self, name, dialect, expected):
        assert quote_identifier(name, dialect) == expected

    def test_unknown_dialect(self):
        with pytest.raises(ValueError, match='Unknown dialect'):
            quote_identifier('x', 'oracle')
