"""Generic lexical scanner used to tokenize log entry bodies.

The scanner recognizes the lexical classes of a C-family language
(identifiers, numbers, strings, chars, brackets, punctuation, operators)
and never fails: characters it has no class for come back as ILLEGAL
tokens carrying the character itself.

Like Go's scanner, a newline following an identifier, literal or closing
bracket produces an automatic SEMICOLON token whose literal is '\\n', and
'//' and '/* */' comments are skipped.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator


class TokenKind(str, Enum):
    """Lexical token classes."""

    IDENT = 'IDENT'
    INT = 'INT'
    FLOAT = 'FLOAT'
    CHAR = 'CHAR'
    STRING = 'STRING'
    LPAREN = 'LPAREN'
    RPAREN = 'RPAREN'
    LBRACK = 'LBRACK'
    RBRACK = 'RBRACK'
    LBRACE = 'LBRACE'
    RBRACE = 'RBRACE'
    COLON = 'COLON'
    COMMA = 'COMMA'
    PERIOD = 'PERIOD'
    SEMICOLON = 'SEMICOLON'
    OPERATOR = 'OPERATOR'
    ILLEGAL = 'ILLEGAL'


@dataclass(frozen=True)
class Token:
    """A scanned token and its literal text."""

    kind: TokenKind
    lit: str


# Longest operators first so alternation picks the longest match
_OPERATORS = [
    '<<=', '>>=', '&^=', '...',
    '&&', '||', '<-', '++', '--', '==', '!=', '<=', '>=', ':=',
    '+=', '-=', '*=', '/=', '%=', '&=', '|=', '^=', '<<', '>>', '&^',
    '+', '-', '*', '/', '%', '&', '|', '^', '<', '>', '=', '!', '~',
]

_PUNCTUATION = {
    '(': TokenKind.LPAREN,
    ')': TokenKind.RPAREN,
    '[': TokenKind.LBRACK,
    ']': TokenKind.RBRACK,
    '{': TokenKind.LBRACE,
    '}': TokenKind.RBRACE,
    ':': TokenKind.COLON,
    ',': TokenKind.COMMA,
    '.': TokenKind.PERIOD,
    ';': TokenKind.SEMICOLON,
}

_TOKEN_RE = re.compile(
    '|'.join(
        [
            r'(?P<space>[ \t\r\f\v]+)',
            r'(?P<newline>\n)',
            r'(?P<line_comment>//[^\n]*)',
            r'(?P<block_comment>/\*[\s\S]*?(?:\*/|\Z))',
            r'(?P<raw_string>`[^`]*`?)',
            r'(?P<string>"(?:[^"\\\n]|\\.)*"?)',
            r"(?P<char>'(?:[^'\\\n]|\\.)*'?)",
            r'(?P<float>\d+\.\d*(?:[eE][+-]?\d+)?|\d+[eE][+-]?\d+|\.\d+(?:[eE][+-]?\d+)?)',
            r'(?P<int>0[xX][0-9a-fA-F]+|\d+)',
            r'(?P<ident>[^\W\d]\w*)',
            '(?P<operator>' + '|'.join(re.escape(op) for op in _OPERATORS) + ')',
            r'(?P<punct>[()\[\]{}:,.;])',
            r'(?P<other>[\s\S])',
        ]
    )
)

_GROUP_KINDS = {
    'raw_string': TokenKind.STRING,
    'string': TokenKind.STRING,
    'char': TokenKind.CHAR,
    'float': TokenKind.FLOAT,
    'int': TokenKind.INT,
    'ident': TokenKind.IDENT,
    'operator': TokenKind.OPERATOR,
    'other': TokenKind.ILLEGAL,
}

# A newline after one of these produces an automatic semicolon
_SEMI_KINDS = {
    TokenKind.IDENT,
    TokenKind.INT,
    TokenKind.FLOAT,
    TokenKind.CHAR,
    TokenKind.STRING,
    TokenKind.RPAREN,
    TokenKind.RBRACK,
    TokenKind.RBRACE,
}

_AUTO_SEMICOLON = Token(TokenKind.SEMICOLON, '\n')


def scan(text: str) -> Iterator[Token]:
    """Tokenize text lazily.

    Args:
        text: Buffer to tokenize

    Yields:
        Token for each lexical element, comments and whitespace excluded
    """
    insert_semi = False

    for match in _TOKEN_RE.finditer(text):
        group = match.lastgroup
        lit = match.group()

        if group == 'space' or group == 'line_comment':
            continue

        if group == 'newline':
            if insert_semi:
                insert_semi = False
                yield _AUTO_SEMICOLON
            continue

        if group == 'block_comment':
            if insert_semi and '\n' in lit:
                insert_semi = False
                yield _AUTO_SEMICOLON
            continue

        if group == 'punct':
            kind = _PUNCTUATION[lit]
        else:
            kind = _GROUP_KINDS[group]

        insert_semi = kind in _SEMI_KINDS or lit in ('++', '--')
        yield Token(kind, lit)

    if insert_semi:
        yield _AUTO_SEMICOLON
