"""Graph data collection sink."""

from mortimer.extractor import Field, PartKind
from mortimer.models import GraphData, GraphEntry


class GraphCollector:
    """Collects name/value fields of the given types into a GraphData feed."""

    def __init__(self, types: frozenset[str] = frozenset({'INT'})):
        self.types = types
        self.parts = frozenset({PartKind.NAME})
        self.graph = GraphData()

    def accepts(self, field: Field) -> bool:
        return field.part == PartKind.NAME and field.value_kind in self.types

    def emit(self, field: Field) -> bool:
        if not self.accepts(field):
            return False
        self.graph.data.setdefault(field.name, []).append(
            GraphEntry(
                ts=field.timestamp,
                level=field.level,
                file_label=field.file_label,
                offset_byte=field.offset_byte,
                offset_line=field.offset_line,
                module=field.module,
                path='.'.join(field.name_path),
                val=field.value,
            )
        )
        return True

    def finish(self) -> GraphData:
        """Return the collected feed, each list sorted by timestamp."""
        result = GraphData()
        result.add(self.graph)
        return result

    def close(self):
        pass
