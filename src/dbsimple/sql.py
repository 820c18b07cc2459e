"""
SQL placeholder handling.

Queries may be written with either ``%s`` or ``?`` positional placeholders
regardless of the target database. Before a statement is prepared its SQL is
tokenized once and the placeholders are rewritten to the dialect's style,
leaving string literals untouched.

- `standardize_placeholders()` - Convert %s <-> ? for dialect
- `count_placeholders()` - Number of positional parameter slots
- `escape_percent_signs_in_literals()` - Escape % in string literals
- `has_placeholders()` - Check if SQL has placeholders
"""
import re
from dataclasses import dataclass
from enum import Enum, auto

# =============================================================================
# Data Structures
# =============================================================================


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    POSITIONAL_PH = auto()      # %s or ?
    ESCAPED_PERCENT = auto()    # %%


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str
    start: int
    end: int


_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*")
    |(?P<escaped>%%)
    |(?P<percent_s>%s)
    |(?P<qmark>\?)
""", re.VERBOSE)

_UNESCAPED_PERCENT = re.compile(r'(?<!%)%(?![%s])')

_HAS_PLACEHOLDER = re.compile(r'%s|\?')

_PLACEHOLDER_STYLE = {
    'postgresql': '%s',
    'sqlite': '?',
}


def tokenize_sql(sql: str) -> list[Token]:
    """Parse SQL into tokens in a single pass.

    >>> [t.type.name for t in tokenize_sql("select ? where a = '?'")]
    ['SQL_TEXT', 'POSITIONAL_PH', 'SQL_TEXT', 'STRING_LITERAL']
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start], last_end, start))

        if match.group('string'):
            ttype = TokenType.STRING_LITERAL
        elif match.group('escaped'):
            ttype = TokenType.ESCAPED_PERCENT
        else:
            ttype = TokenType.POSITIONAL_PH

        tokens.append(Token(ttype, match.group(0), start, end))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:], last_end, len(sql)))

    return tokens


def has_placeholders(sql: str | None) -> bool:
    """Check if SQL has any positional parameter placeholders.

    >>> has_placeholders('select 1'), has_placeholders('select %s')
    (False, True)
    """
    if not sql:
        return False
    if '%' not in sql and '?' not in sql:
        return False
    return bool(_HAS_PLACEHOLDER.search(sql))


def count_placeholders(sql: str) -> int:
    """Count positional placeholders outside string literals.

    >>> count_placeholders("select * from users where id = ? and name <> '?'")
    1
    >>> count_placeholders('insert into t values (%s, %s)')
    2
    """
    if not has_placeholders(sql):
        return 0
    return sum(1 for token in tokenize_sql(sql) if token.type == TokenType.POSITIONAL_PH)


def _escape_percent_in_literal(literal: str) -> str:
    return _UNESCAPED_PERCENT.sub('%%', literal)


def escape_percent_signs_in_literals(sql: str) -> str:
    """Escape bare percent signs in string literals.

    psycopg treats every ``%`` in a parametrized query as a format marker.

    >>> escape_percent_signs_in_literals("select * from t where a like 'x%' and b = %s")
    "select * from t where a like 'x%%' and b = %s"
    """
    if not sql or '%' not in sql:
        return sql

    result = []
    for token in tokenize_sql(sql):
        if token.type == TokenType.STRING_LITERAL:
            result.append(_escape_percent_in_literal(token.text))
        else:
            result.append(token.text)
    return ''.join(result)


def standardize_placeholders(sql: str, dialect: str = 'postgresql') -> str:
    """Convert positional placeholders to the dialect's style.

    >>> standardize_placeholders('select * from t where a = %s', 'sqlite')
    'select * from t where a = ?'
    >>> standardize_placeholders("select '?' from t where a = ?", 'postgresql')
    "select '?' from t where a = %s"
    """
    if not sql:
        return sql

    if dialect not in _PLACEHOLDER_STYLE:
        raise ValueError(f'Unknown dialect: {dialect}')

    target = _PLACEHOLDER_STYLE[dialect]
    other = '?' if target == '%s' else '%s'
    if other not in sql:
        return sql

    result = []
    for token in tokenize_sql(sql):
        if token.type == TokenType.POSITIONAL_PH and token.text == other:
            result.append(target)
        else:
            result.append(token.text)
    return ''.join(result)


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
