"""
SQL placeholder rewriting and identifier quoting.

Statements generated by the mapper use the dialect's own bind-variable
syntax (`?` or `$n`); hand-written statements passed to `exec`/`select` may
use `?`, `%s` or `$n`. Before execution the text is tokenized once (string
literals, quoted identifiers and comments are left alone) and every placeholder is
rewritten to the paramstyle the driver expects:

    SQL + Args → Tokenize → Rewrite placeholders → (SQL, Args)

`$n` placeholders may repeat or appear out of order; arguments are reordered
to match their position in the rewritten text.
"""
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from recordmap.exceptions import ValidationError


class TokenType(Enum):
    """Token types identified during SQL scanning."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    QUOTED_IDENT = auto()
    COMMENT = auto()            # -- line or /* block */
    POSITIONAL_PH = auto()      # %s or ?
    NUMBERED_PH = auto()        # $1, $2, ...
    ESCAPED_PERCENT = auto()    # %%
    PERCENT = auto()


@dataclass(slots=True)
class Token:
    """Token from SQL scanning."""
    type: TokenType
    text: str
    number: int = 0


_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*')
    |(?P<comment>--[^\n]*|/\*.*?\*/)
    |(?P<ident>"(?:[^"]|"")*"|`(?:[^`]|``)*`)
    |(?P<numbered>\$(?P<num>\d+))
    |(?P<percent_s>%s)
    |(?P<escaped>%%)
    |(?P<percent>%)
    |(?P<qmark>\?)
""", re.VERBOSE | re.DOTALL)


def tokenize_sql(sql: str) -> list[Token]:
    """Split SQL into tokens in a single pass, preserving all text.
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()
        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start]))

        text = match.group(0)
        if match.group('string'):
            tokens.append(Token(TokenType.STRING_LITERAL, text))
        elif match.group('comment'):
            tokens.append(Token(TokenType.COMMENT, text))
        elif match.group('ident'):
            tokens.append(Token(TokenType.QUOTED_IDENT, text))
        elif match.group('numbered'):
            tokens.append(Token(TokenType.NUMBERED_PH, text, int(match.group('num'))))
        elif match.group('percent_s') or match.group('qmark'):
            tokens.append(Token(TokenType.POSITIONAL_PH, text))
        elif match.group('escaped'):
            tokens.append(Token(TokenType.ESCAPED_PERCENT, text))
        else:
            tokens.append(Token(TokenType.PERCENT, text))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:]))

    return tokens


def standardize_placeholders(sql: str, args: tuple | list = (),
                             paramstyle: str = '?') -> tuple[str, tuple]:
    """Rewrite placeholders to `paramstyle` ('?' or '%s').

    Parameters
        sql: SQL statement text
        args: positional arguments for the statement
        paramstyle: placeholder marker the driver expects

    Returns
        Tuple of (rewritten sql, arguments in placeholder order)

    Raises
        ValidationError: numbered and positional placeholders are mixed, or
            a numbered placeholder refers past the end of args
    """
    args = tuple(args)
    if not sql:
        return sql, args

    tokens = tokenize_sql(sql)
    kinds = {t.type for t in tokens}
    numbered = TokenType.NUMBERED_PH in kinds
    if numbered and TokenType.POSITIONAL_PH in kinds:
        raise ValidationError(f'Cannot mix numbered and positional placeholders: {sql}')

    # psycopg and pymysql treat every bare % as a format marker once args are given
    escape_percent = paramstyle == '%s' and bool(args)

    out: list[str] = []
    ordered: list[Any] = []
    for token in tokens:
        if token.type == TokenType.NUMBERED_PH:
            if not 0 < token.number <= len(args):
                raise ValidationError(
                    f'Placeholder {token.text} has no matching argument ({len(args)} given)')
            ordered.append(args[token.number - 1])
            out.append(paramstyle)
        elif token.type == TokenType.POSITIONAL_PH:
            out.append(paramstyle)
        elif token.type in {TokenType.STRING_LITERAL, TokenType.COMMENT} and escape_percent:
            out.append(token.text.replace('%', '%%'))
        elif token.type == TokenType.PERCENT and escape_percent:
            out.append('%%')
        else:
            out.append(token.text)

    return ''.join(out), tuple(ordered) if numbered else args


def quote_identifier(identifier: str, dialect: str = 'postgresql') -> str:
    """Safely quote database identifiers.

    Parameters
        identifier: Table or column name
        dialect: Database dialect

    Returns
        Quoted identifier

    Raises
        ValueError: If dialect is unsupported
    """
    if dialect in {'postgresql', 'sqlite'}:
        return '"' + identifier.replace('"', '""') + '"'

    if dialect == 'mysql':
        return '`' + identifier.replace('`', '``') + '`'

    raise ValueError(f'Unknown dialect: {dialect}')
