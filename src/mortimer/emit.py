"""Emit sinks: filter extracted fields and write them as text lines."""

import json
import logging
import os
import sys
from typing import TextIO

from mortimer.extractor import PART_ALIASES, Field, PartKind
from mortimer.utils import csv_to_set


logger = logging.getLogger(__name__)

VALUE_TYPES = frozenset({'INT', 'STRING', 'FLOAT', 'CHAR'})


def parse_parts(csv: str) -> frozenset[PartKind]:
    """Parse a comma-separated list of part names, accepting legacy aliases.

    Raises:
        ValueError: On an unknown part name
    """
    parts = set()
    for name in csv_to_set(csv):
        if name in PART_ALIASES:
            parts.add(PART_ALIASES[name])
        elif name in PartKind.__members__:
            parts.add(PartKind[name])
        else:
            raise ValueError(f'unknown part: {name}')
    return frozenset(parts)


def parse_types(csv: str) -> frozenset[str]:
    """Parse a comma-separated list of value types.

    Raises:
        ValueError: On an unknown value type
    """
    types = csv_to_set(csv)
    unknown = types - VALUE_TYPES
    if unknown:
        raise ValueError(f'unknown value type: {", ".join(sorted(unknown))}')
    return frozenset(types)


def format_path(path: tuple[str, ...]) -> str:
    return '[' + ' '.join(path) + ']'


class Emitter:
    """Writes the fields that pass its {parts} x {types} filter to a text stream.

    FULL fields are gated by part only.
    """

    def __init__(
        self,
        parts: frozenset[PartKind],
        types: frozenset[str],
        stream: TextIO,
        name: str = 'stdout',
        owns_stream: bool = False,
    ):
        self.parts = parts
        self.types = types
        self.stream = stream
        self.name = name
        self._owns_stream = owns_stream
        self.count = 0

    def accepts(self, field: Field) -> bool:
        if field.part not in self.parts:
            return False
        return field.part == PartKind.FULL or field.value_kind in self.types

    def format(self, field: Field) -> str:
        # The part label only disambiguates sinks that take several parts
        part = f'{field.part.value} ' if len(self.parts) > 1 else ''
        head = (
            f'  {field.timestamp} {field.level} {field.file_label} '
            f'{field.offset_byte}:{field.offset_line} {part}{field.module}'
        )

        if field.part == PartKind.FULL:
            return f'{head} {field.value}'

        name = f'{field.name} ' if field.name else ''
        value = json.dumps(field.value, ensure_ascii=False) if field.quoted else field.value
        return f'{head} {format_path(field.name_path)} {name}= {field.value_kind} {value}'

    def emit(self, field: Field) -> bool:
        """Write field if accepted, returns True when written."""
        if not self.accepts(field):
            return False
        self.stream.write(self.format(field))
        self.stream.write('\n')
        self.count += 1
        return True

    def close(self):
        logger.debug(f'Closing {self.name}: {self.count:,} fields written')
        if self._owns_stream:
            self.stream.close()
        else:
            self.stream.flush()


def stdout_emitter(parts: frozenset[PartKind], types: frozenset[str]) -> Emitter:
    return Emitter(parts, types, sys.stdout, name='stdout')


def open_file_emitter(out_dir: str, out_name: str, parts: frozenset[PartKind], types: frozenset[str]) -> Emitter:
    """Create an emitter writing to out_dir/out_name, truncating it.

    Raises:
        OSError: If the file can not be created
    """
    out_path = os.path.join(out_dir, out_name)
    stream = open(out_path, 'w', encoding='utf-8')
    emitter = Emitter(parts, types, stream, name=out_path, owns_stream=True)
    logger.info(f'Emitting {",".join(sorted(p.value for p in parts))} to {out_path}')
    return emitter


def out_dir_emitters(out_dir: str) -> list[Emitter]:
    """Standard per-purpose sinks: full.log with whole entries, ints.log with INT name/value pairs."""
    os.makedirs(out_dir, exist_ok=True)
    return [
        open_file_emitter(out_dir, 'full.log', frozenset({PartKind.FULL}), VALUE_TYPES),
        open_file_emitter(out_dir, 'ints.log', frozenset({PartKind.NAME}), frozenset({'INT'})),
    ]
