"""Entry extraction: turns one log entry into classified, typed fields.

An entry's first line must match its file type's prefix pattern, which
supplies the timestamp, module and level. The remaining text is cleansed,
tokenized and walked with a stack of scopes, one per open bracket, so that
a value nested as in `stats {ops = 5}` is reported as name `ops` under the
path `[stats]`.

Adjacent tokens that carry no structure (identifiers, most operators,
unrecognized characters) are merged into a single text run, which collapses
free-form prose into one token before names are picked out.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from mortimer.dictionary import STRING, Dictionary
from mortimer.lexer import Token, TokenKind, scan
from mortimer.meta import FileMeta, format_timestamp
from mortimer.segmenter import Entry


logger = logging.getLogger(__name__)


class PartKind(str, Enum):
    """Which part of an entry a field came from."""

    FULL = 'FULL'  # The whole entry
    NAME = 'NAME'  # A name = value pair
    MIDS = 'MIDS'  # Text between name = value pairs
    ENDS = 'ENDS'  # Text after the last name = value pair


PART_ALIASES = {
    'VALS': PartKind.NAME,
    'STRS': PartKind.MIDS,
    'TAIL': PartKind.ENDS,
}

ALL_PARTS = frozenset(PartKind)

DEFAULT_VALUE_TYPES = frozenset({'INT', 'STRING'})


@dataclass(frozen=True)
class Field:
    """One observation extracted from an entry."""

    timestamp: str
    module: str
    level: str
    file_label: str
    offset_byte: int
    offset_line: int
    part: PartKind
    name_path: tuple[str, ...] = ()
    name: str = ''
    value_kind: str = STRING
    value: str = ''
    quoted: bool = False


# Open brackets enter a scope, close brackets leave it. A delta of 0 keeps
# the scope but marks the token as structural, so it never merges with its
# neighbours. Tokens missing from the table have no delta and are mergeable.
LEVEL_DELTA = {
    TokenKind.LPAREN: 1,
    TokenKind.RPAREN: -1,
    TokenKind.LBRACK: 1,
    TokenKind.RBRACK: -1,
    TokenKind.LBRACE: 1,
    TokenKind.RBRACE: -1,
    TokenKind.CHAR: 0,
    TokenKind.INT: 0,
    TokenKind.FLOAT: 0,
    TokenKind.STRING: 0,
    TokenKind.COLON: 0,
    TokenKind.COMMA: 0,
    TokenKind.PERIOD: 0,
    TokenKind.SEMICOLON: 0,
}

ZERO_DELTA_OPERATORS = frozenset({'+', '-', '*', '/'})

# Shift operators collide with erlang binaries such as <<"bin">>
SKIP_OPERATORS = frozenset({'<<', '>>'})

TEXT_TRIM = '\t\n .:,'
NAME_TRIM = ' \t\n"`=:'
INVALID_NAME_CHARS = '<>/'


def level_delta(tok: Token) -> int | None:
    if tok.kind == TokenKind.OPERATOR:
        return 0 if tok.lit in ZERO_DELTA_OPERATORS else None
    return LEVEL_DELTA.get(tok.kind)


def is_skip_token(tok: Token) -> bool:
    return tok.kind == TokenKind.OPERATOR and tok.lit in SKIP_OPERATORS


def clean_name(lit: str) -> str:
    """Trim whitespace, quotes and trailing assignment marks from a name candidate."""
    return lit.strip(NAME_TRIM)


def validate_name(name: str) -> str:
    """Return name, or '' when it can not be a field name."""
    name = clean_name(name)
    if any(c in name for c in INVALID_NAME_CHARS):
        return ''
    return name


def string_value(lit: str) -> str:
    """Strip the delimiters from a string literal."""
    if len(lit) >= 2 and lit[0] == lit[-1] and lit[0] in '"`':
        return lit[1:-1]
    return lit


@dataclass
class PendingToken:
    kind: TokenKind
    lit: str
    has_delta: bool
    emitted: bool = False


def name_from_pending(pending: list[PendingToken], end: int | None = None) -> str:
    """Return the last IDENT or STRING literal before end, or ''."""
    if end is None:
        end = len(pending)
    for i in range(end - 1, -1, -1):
        if pending[i].kind in (TokenKind.IDENT, TokenKind.STRING):
            return pending[i].lit
    return ''


@dataclass
class Scope:
    """Tokens seen so far at one nesting level."""

    path: tuple[str, ...]
    pending: list[PendingToken] = field(default_factory=list)
    emitted: int = 0  # Index of the first pending token not yet flushed


class ScopeStack:
    """Stack of open scopes; the root scope can never be popped."""

    def __init__(self):
        self.scopes = [Scope(path=())]

    @property
    def depth(self) -> int:
        return len(self.scopes) - 1

    @property
    def top(self) -> Scope:
        return self.scopes[-1]

    @property
    def path(self) -> tuple[str, ...]:
        return self.top.path

    def push(self, segment: str) -> Scope:
        path = self.path + (segment,) if segment else self.path
        scope = Scope(path=path)
        self.scopes.append(scope)
        return scope

    def pop(self) -> Scope | None:
        """Pop the innermost scope, None at depth 0."""
        if self.depth == 0:
            return None
        return self.scopes.pop()


@dataclass
class EntryContext:
    """Per-entry values stamped onto every field."""

    timestamp: str
    module: str
    level: str
    file_label: str
    offset_byte: int
    offset_line: int


class EntryExtractor:
    """Extracts fields from the entries of one file.

    Observations are recorded into the given dictionary, which must be owned
    by the caller's thread.
    """

    def __init__(
        self,
        fmeta: FileMeta,
        dictionary: Dictionary,
        value_types: Iterable[str] = DEFAULT_VALUE_TYPES,
        parts: Iterable[PartKind] = ALL_PARTS,
    ):
        self.fmeta = fmeta
        self.dictionary = dictionary
        self.value_types = frozenset(value_types)
        self.parts = frozenset(parts)

        self.entries_matched = 0
        self.entries_dropped = 0
        self.min_ts: str | None = None
        self.max_ts: str | None = None

    def extract(self, entry: Entry) -> list[Field]:
        """Extract the fields of one entry.

        Returns an empty list when the first line does not match the prefix
        pattern; such entries are dropped without touching the dictionary.
        """
        if not entry.lines or self.fmeta.prefix_re is None:
            self.entries_dropped += 1
            return []

        first_line = entry.lines[0]
        match = self.fmeta.prefix_re.match(first_line)
        if match is None:
            self.entries_dropped += 1
            logger.debug(f'Dropped entry at {entry.source}:{entry.start_line}, prefix did not match')
            return []

        self.entries_matched += 1

        groups = match.groupdict()
        ts = format_timestamp(match)
        if self.min_ts is None or ts < self.min_ts:
            self.min_ts = ts
        if self.max_ts is None or ts > self.max_ts:
            self.max_ts = ts

        ctx = EntryContext(
            timestamp=ts,
            module=groups.get('module') or '',
            level=groups.get('level') or '',
            file_label=entry.source,
            offset_byte=entry.start_offset,
            offset_line=entry.start_line,
        )

        lines = [first_line[match.end() :]] + entry.lines[1:]

        out: list[Field] = []

        if PartKind.FULL in self.parts:
            out.append(self._field(ctx, PartKind.FULL, value=' '.join(lines).replace('\n', ' ')))

        buf = ''.join(line + '\n' for line in lines)
        if self.fmeta.cleanser is not None:
            buf = self.fmeta.cleanser(buf)

        self.walk(scan(buf), ctx, out)

        return out

    def walk(self, tokens: Iterable[Token], ctx: EntryContext, out: list[Field]) -> ScopeStack:
        """Walk a token stream, appending fields to out.

        Returns the scope stack, which is back at depth 0 once the walk ends.
        """
        stack = ScopeStack()

        for tok in tokens:
            if is_skip_token(tok):
                continue

            delta = level_delta(tok)
            scope = stack.top

            if delta is not None and delta > 0:
                segment = clean_name(name_from_pending(scope.pending))
                self._flush(scope, ctx, out)
                stack.push(segment)
            elif delta is not None and delta < 0:
                # An unmatched closer at depth 0 is ignored
                if stack.depth > 0:
                    self._flush(scope, ctx, out)
                    stack.pop()
            else:
                if delta is None and scope.pending:
                    prev = scope.pending[-1]
                    if not prev.emitted and not prev.has_delta:
                        prev.lit = prev.lit + ' ' + tok.lit
                        continue
                scope.pending.append(PendingToken(tok.kind, tok.lit, delta is not None))

        while True:
            self._flush(stack.top, ctx, out)
            if stack.pop() is None:
                break

        return stack

    def _flush(self, scope: Scope, ctx: EntryContext, out: list[Field]):
        """Classify the not yet emitted tokens of a scope into fields."""
        pending = scope.pending
        texts: list[str] = []

        for i in range(scope.emitted, len(pending)):
            tok = pending[i]
            if tok.emitted:
                continue
            tok.emitted = True

            if tok.kind.value not in self.value_types:
                texts.append(tok.lit)
                continue

            strs = ' '.join(texts).strip(TEXT_TRIM)
            if strs and PartKind.MIDS in self.parts:
                out.append(self._field(ctx, PartKind.MIDS, scope.path, value=strs, quoted=True))
            texts = []

            self._emit_value(ctx, scope.path, pending, i, out)

        scope.emitted = len(pending)

        strs = ' '.join(texts).strip(TEXT_TRIM)
        if strs and PartKind.ENDS in self.parts:
            out.append(self._field(ctx, PartKind.ENDS, scope.path, value=strs, quoted=True))

    def _emit_value(self, ctx: EntryContext, path: tuple[str, ...], pending: list[PendingToken], i: int, out):
        tok = pending[i]

        name = validate_name(name_from_pending(pending, i))
        if not name:
            return

        if ' ' in name:
            # 'foo bar baz = 1' at the top level reads as path [foo bar], name baz
            if path:
                return
            words = name.split()
            name = words[-1]
            path = tuple(words[:-1])

        kind = tok.kind.value
        value = string_value(tok.lit) if tok.kind == TokenKind.STRING else tok.lit

        self.dictionary.record(kind, name, value)

        if PartKind.NAME in self.parts:
            out.append(
                self._field(
                    ctx,
                    PartKind.NAME,
                    path,
                    name=name,
                    value_kind=kind,
                    value=value,
                    quoted=tok.kind == TokenKind.STRING,
                )
            )

    @staticmethod
    def _field(
        ctx: EntryContext,
        part: PartKind,
        path: tuple[str, ...] = (),
        name: str = '',
        value_kind: str = STRING,
        value: str = '',
        quoted: bool = False,
    ) -> Field:
        return Field(
            timestamp=ctx.timestamp,
            module=ctx.module,
            level=ctx.level,
            file_label=ctx.file_label,
            offset_byte=ctx.offset_byte,
            offset_line=ctx.offset_line,
            part=part,
            name_path=path,
            name=name,
            value_kind=value_kind,
            value=value,
            quoted=quoted,
        )
