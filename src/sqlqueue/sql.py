"""
SQL placeholder handling for prepared statements.

Statements bind parameters by position, so SQL may use either `%s` or `?`
placeholders; they are converted to the driver's style once, when the
statement is prepared. String literals, quoted identifiers and comments are
never touched.

Main entry points:
- `tokenize_sql()` - Split SQL into literal, comment, placeholder and text tokens
- `standardize_placeholders()` - Convert %s <-> ? to a driver's placeholder
- `count_placeholders()` - Number of positional placeholders
- `has_named_placeholders()` - Detect %(name)s / :name placeholders
"""
import re
from dataclasses import dataclass
from enum import Enum, auto

__all__ = [
    'TokenType',
    'Token',
    'tokenize_sql',
    'standardize_placeholders',
    'count_placeholders',
    'has_placeholders',
    'has_named_placeholders',
]


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    COMMENT = auto()
    POSITIONAL_PH = auto()      # %s or ?
    NAMED_PH = auto()           # %(name)s or :name


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str
    start: int
    end: int


_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*")
    |(?P<comment>--[^\n]*|/\*.*?\*/)
    |(?P<named>%\([^)]+\)s|(?<![:\w]):[A-Za-z_]\w*)
    |(?P<percent_s>%s)
    |(?P<qmark>\?)
""", re.VERBOSE | re.DOTALL)

# Find unescaped percent signs in string content
_UNESCAPED_PERCENT = re.compile(r'(?<!%)%(?![%s(])')


def tokenize_sql(sql: str) -> list[Token]:
    """Parse SQL into tokens in a single pass.

    Parameters
        sql: SQL query string

    Returns
        List of tokens preserving all SQL text
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start], last_end, start))

        if match.group('string'):
            ttype = TokenType.STRING_LITERAL
        elif match.group('comment'):
            ttype = TokenType.COMMENT
        elif match.group('named'):
            ttype = TokenType.NAMED_PH
        else:
            ttype = TokenType.POSITIONAL_PH

        tokens.append(Token(ttype, match.group(0), start, end))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:], last_end, len(sql)))

    return tokens


def standardize_placeholders(sql: str, placeholder: str = '%s') -> str:
    """Convert every positional placeholder to `placeholder`.

    With format-style `%s` placeholders, percent signs inside string literals
    are doubled when the statement has placeholders, since the driver would
    read them as formats.

    Parameters
        sql: SQL query string
        placeholder: Positional placeholder the driver expects, `%s` or `?`

    Returns
        SQL with standardized placeholders
    """
    if not sql:
        return sql

    tokens = tokenize_sql(sql)
    has_params = any(t.type is TokenType.POSITIONAL_PH for t in tokens)

    result = []
    for token in tokens:
        if token.type is TokenType.POSITIONAL_PH:
            result.append(placeholder)
        elif token.type is TokenType.STRING_LITERAL and placeholder == '%s' and has_params:
            result.append(_UNESCAPED_PERCENT.sub('%%', token.text))
        else:
            result.append(token.text)
    return ''.join(result)


def count_placeholders(sql: str | None) -> int:
    """Number of positional placeholders outside literals and comments.
    """
    if not sql:
        return 0
    return sum(1 for t in tokenize_sql(sql) if t.type is TokenType.POSITIONAL_PH)


def has_placeholders(sql: str | None) -> bool:
    """Check if SQL has any positional parameter placeholders.
    """
    return count_placeholders(sql) > 0


def has_named_placeholders(sql: str | None) -> bool:
    """Check if SQL uses named placeholders, which positional binding cannot fill.
    """
    if not sql:
        return False
    return any(t.type is TokenType.NAMED_PH for t in tokenize_sql(sql))
