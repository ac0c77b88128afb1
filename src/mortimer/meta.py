"""Per-file-type metadata describing how to segment and parse each log format.

The catalog is keyed by file name as found in a Couchbase diagnostic bundle
(cbcollect_info output). Each FileMeta carries plain data plus two optional
functions: an entry-start predicate and a text cleanser run before
tokenizing, which quotes runs of text the scanner would otherwise fragment.
"""

import re
from dataclasses import dataclass
from typing import Callable


# File suffixes considered during directory discovery
WANT_SUFFIXES = {'.log'}


@dataclass(frozen=True)
class FileMeta:
    """Metadata about a file that needs to be parsed."""

    skip: bool = False  # When true, ignore this file
    header_size: int = 0  # Number of lines in a skippable header
    entry_start: Callable[[str], bool] | None = None  # None: every line starts an entry
    prefix_re: re.Pattern | None = None  # Parses the first line of an entry
    cleanser: Callable[[str], str] | None = None  # Called before tokenizing an entry


# ============================================================================
# Prefix patterns
# ============================================================================
#
# From memcached.log...
#   2016-04-14T16:10:09.463447-07:00 WARNING Restarting file logging
#
# From ns_server.fts.log...
#   2016-04-14T17:43:52.164-07:00 [INFO] moss_herder: persistence progess, waiting: 3
#
# From ns_server.babysitter.log...
#   [error_logger:info,2016-04-14T16:10:05.262-07:00,babysitter_of_ns_1@127.0.0.1
#
# From ns_server.goxdcr.log...
#   ReplicationManager 2016-04-14T16:10:09.652-07:00 [INFO] GOMAXPROCS=4

YMD = r'(?P<year>\d\d\d\d)-(?P<month>\d\d)-(?P<day>\d\d)'
HMS = r'T(?P<hour>\d\d):(?P<minute>\d\d):(?P<second>\d\d)\.(?P<fraction>\d+)'

RE_USUAL = re.compile(r'^' + YMD + HMS + r'(?:[-+]\S+|Z)\s(?P<level>\S+)\s')

RE_USUAL_EX = re.compile(r'^(?P<module>\w+)\s' + YMD + HMS + r'(?:[-+]\S+|Z)\s(?P<level>\S+)\s')

RE_NS = re.compile(r'^\[(?P<module>\w+):(?P<level>\w+),' + YMD + HMS + r'(?:[-+][^,]+|Z),')


def format_timestamp(match: re.Match) -> str:
    """Build a sortable timestamp string from a prefix match."""
    return '{year}-{month}-{day}T{hour}:{minute}:{second}.{fraction}'.format(**match.groupdict())


# ============================================================================
# Cleansers
# ============================================================================

YMD_HMS_RE = re.compile(YMD + HMS)

_HEX = '[a-f0-9]'
_HEX6 = _HEX * 6

# UUID-like runs such as 'aa1b2c-3d4e5f6'
IDENT_RE = re.compile(r'(\w[a-z0\-_:]+)?' + _HEX6 + '+-' + _HEX6 + '+')

EQUALS_BAR_RE = re.compile(r'=======+([^=]+)=======+')

NS_PID_RE = re.compile(r'(<\d+\.\d+\.\d+>)')  # <0.0.0>

NS_ADDR_RE = re.compile(r'(ns_\d+@\d+\.\d+\.\d+.\d+)')


def quote_idents(text: str) -> str:
    """Quote UUID-like hex identifiers."""
    return IDENT_RE.sub(r'"\g<0>"', text)


def blank_unmatched_rbrack(text: str) -> str:
    """Replace the first ']' when no '[' opens before it.

    The ns_server prefix pattern stops inside the bracketed header, leaving
    its closing bracket behind.
    """
    rbrack = text.find(']')
    if rbrack >= 0:
        lbrack = text.find('[')
        if lbrack < 0 or rbrack < lbrack:
            text = text[:rbrack] + ' ' + text[rbrack + 1 :]
    return text


def cleanse_ns(text: str) -> str:
    """Cleanser for ns_server (erlang) logs."""
    text = blank_unmatched_rbrack(text)

    # `=============PROGRESS REPORT=============` -> `"PROGRESS REPORT"`
    text = EQUALS_BAR_RE.sub(r'"\1"', text)

    # `<0.0.0>` -> `"<0.0.0>"`
    text = NS_PID_RE.sub(r'"\1"', text)

    # `ns_1@172.23.105.216` -> `"ns_1@172.23.105.216"`
    text = NS_ADDR_RE.sub(r'"\1"', text)

    text = YMD_HMS_RE.sub(r'"\g<0>"', text)

    return quote_idents(text)


def cleanse_joined_lines(text: str) -> str:
    """Join continuation lines into one line."""
    return text.replace('\n', '')


# ============================================================================
# Entry start predicates
# ============================================================================


def ns_entry_start(line: str) -> bool:
    """True for lines like '[ns_server:debug,2016-04-14T...'."""
    if not line or line[0] != '[':
        return False
    parts = line.split(',')
    if len(parts) < 3 or not parts[1]:
        return False
    return parts[1][0].isdigit()


def usual_entry_start(line: str) -> bool:
    return RE_USUAL.match(line) is not None


# ============================================================================
# Catalog
# ============================================================================

FILE_META_NS = FileMeta(
    header_size=4,
    entry_start=ns_entry_start,
    prefix_re=RE_NS,
    cleanser=cleanse_ns,
)

# Keyed by file name, keep alphabetical
FILE_METAS: dict[str, FileMeta] = {
    'memcached.log': FileMeta(header_size=4, prefix_re=RE_USUAL, cleanser=quote_idents),
    'ns_server.babysitter.log': FILE_META_NS,
    'ns_server.couchdb.log': FILE_META_NS,
    'ns_server.error.log': FILE_META_NS,
    'ns_server.fts.log': FileMeta(
        header_size=4,
        entry_start=usual_entry_start,
        prefix_re=RE_USUAL,
        cleanser=cleanse_joined_lines,
    ),
    'ns_server.goxdcr.log': FileMeta(header_size=4, prefix_re=RE_USUAL_EX),
    'ns_server.http_access.log': FileMeta(skip=True, header_size=4),
    'ns_server.http_access_internal.log': FileMeta(skip=True, header_size=4),
    'ns_server.info.log': FILE_META_NS,
    'ns_server.metakv.log': FILE_META_NS,
    'ns_server.ns_couchdb.log': FILE_META_NS,
    'ns_server.projector.log': FileMeta(header_size=4, prefix_re=RE_USUAL),
    'ns_server.reports.log': FILE_META_NS,
    'ns_server.ssl_proxy.log': FILE_META_NS,
    'ns_server.stats.log': FILE_META_NS,
    'ns_server.xdcr.log': FILE_META_NS,
}


def is_wanted_file(fname: str) -> bool:
    """Check whether a file name has one of the wanted suffixes."""
    return any(fname.endswith(suffix) for suffix in WANT_SUFFIXES)


def lookup_file_meta(fname: str, metas: dict[str, FileMeta] | None = None) -> FileMeta | None:
    """Find processable metadata for a file name.

    Args:
        fname: Base file name
        metas: Catalog to consult, FILE_METAS by default

    Returns:
        FileMeta, or None when the file is unknown or marked skip
    """
    if metas is None:
        metas = FILE_METAS
    fmeta = metas.get(fname)
    if fmeta is None or fmeta.skip:
        return None
    return fmeta
