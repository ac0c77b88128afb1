"""Aggregation pipeline: processes log files in parallel and merges their statistics.

Every file is processed start to finish by one worker, with its own
segmenter, extractor and local Dictionary, so no locking happens while
tokenizing. Shared state (the global Dictionary, progress counters and the
output sinks) lives in RunState behind a single lock, touched once per
completed file by merge_result() and once per emitted field by emit().
"""

import logging
import os
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from time import time
from typing import Protocol

from mortimer import prometheus as prom
from mortimer.dictionary import Dictionary
from mortimer.extractor import DEFAULT_VALUE_TYPES, EntryExtractor, Field, PartKind
from mortimer.graph import GraphCollector
from mortimer.meta import FILE_METAS, FileMeta, is_wanted_file, lookup_file_meta
from mortimer.models import DictionarySnapshot, ProgressResponse
from mortimer.segmenter import EntrySegmenter
from mortimer.utils import default_queue_size, default_worker_count


logger = logging.getLogger(__name__)


class Sink(Protocol):
    parts: frozenset[PartKind]

    def emit(self, field: Field) -> bool: ...

    def close(self): ...


@dataclass
class RunConfig:
    """Resolved configuration of one processing run."""

    dirs: list[str]
    workers: int = 0  # 0: one per CPU
    queue_size: int = 0  # Files waiting for a worker, 0: twice the worker count
    value_types: frozenset[str] = DEFAULT_VALUE_TYPES
    dict_path: str | None = None
    graph_path: str | None = None
    metas: dict[str, FileMeta] = field(default_factory=lambda: FILE_METAS)


@dataclass
class FileTask:
    """A file selected for processing."""

    dir: str
    fname: str
    fmeta: FileMeta
    size: int

    @property
    def dir_base(self) -> str:
        return os.path.basename(os.path.normpath(self.dir))

    @property
    def path(self) -> str:
        return os.path.join(self.dir, self.fname)

    @property
    def label(self) -> str:
        return f'{self.dir_base}/{self.fname}'


@dataclass
class FileResult:
    """Everything one worker produced for one file."""

    task: FileTask
    dictionary: Dictionary
    bytes_read: int = 0
    entries: int = 0
    dropped: int = 0
    min_ts: str | None = None
    max_ts: str | None = None
    duration: float = 0.0


class RunState:
    """Shared state of a run, guarded by a single lock."""

    def __init__(self, sinks: list[Sink] | None = None):
        self.lock = threading.Lock()
        self.dictionary = Dictionary()
        self.sinks: list[Sink] = list(sinks or [])
        self.min_ts: str | None = None
        self.max_ts: str | None = None
        self.file_sizes: dict[str, dict[str, int]] = {}
        self.file_progress: dict[str, dict[str, int]] = {}
        self.emit_progress = 0
        self.emit_done = False
        self.files_processed = 0
        self.files_skipped: list[str] = []

    def register_file(self, task: FileTask):
        with self.lock:
            self.file_sizes.setdefault(task.dir_base, {})[task.fname] = task.size
            self.file_progress.setdefault(task.dir_base, {})[task.fname] = 0

    def emit(self, field: Field):
        """Write a field to every sink that accepts it."""
        with self.lock:
            written = False
            for sink in self.sinks:
                if sink.emit(field):
                    written = True
            if written:
                self.emit_progress += 1
                prom.record_field_emitted()

    def merge_result(self, result: FileResult):
        """Fold one completed file into the global state.

        Raises:
            HistogramConfigError: If histogram bucket parameters differ
        """
        with self.lock:
            result.dictionary.merge_into(self.dictionary)

            if result.min_ts is not None and (self.min_ts is None or result.min_ts < self.min_ts):
                self.min_ts = result.min_ts
            if result.max_ts is not None and (self.max_ts is None or result.max_ts > self.max_ts):
                self.max_ts = result.max_ts

            task = result.task
            self.file_progress.setdefault(task.dir_base, {})[task.fname] = result.bytes_read
            self.files_processed += 1

    def progress(self) -> ProgressResponse:
        with self.lock:
            return ProgressResponse(
                min_ts=self.min_ts,
                max_ts=self.max_ts,
                emit_done=self.emit_done,
                emit_progress=self.emit_progress,
                file_sizes={d: dict(files) for d, files in self.file_sizes.items()},
                file_progress={d: dict(files) for d, files in self.file_progress.items()},
            )

    def snapshot(self) -> DictionarySnapshot:
        with self.lock:
            return DictionarySnapshot.from_dictionary(self.dictionary, self.min_ts, self.max_ts)


class Pipeline:
    """Discovers log files in directories and processes them with a worker pool.

    Any worker error (an OSError reading a file, for example) aborts the
    run: queued files are cancelled and the first error propagates.
    """

    def __init__(self, config: RunConfig, sinks: list[Sink] | None = None):
        self.config = config
        self.workers = config.workers if config.workers > 0 else default_worker_count()
        self.queue_size = config.queue_size if config.queue_size > 0 else default_queue_size(self.workers)

        self.graph: GraphCollector | None = None
        sinks = list(sinks or [])
        if config.graph_path:
            self.graph = GraphCollector()
            sinks.append(self.graph)

        self.state = RunState(sinks)

        self.parts = frozenset()
        for sink in sinks:
            self.parts |= sink.parts

    def discover(self) -> list[FileTask]:
        """List processable files in the configured directories.

        Raises:
            OSError: If a directory can not be listed
        """
        tasks = []
        for directory in self.config.dirs:
            dir_base = os.path.basename(os.path.normpath(directory))
            for fname in sorted(os.listdir(directory)):
                path = os.path.join(directory, fname)
                if not os.path.isfile(path):
                    continue

                if not is_wanted_file(fname):
                    self._skip(dir_base, fname, path, 'suffix')
                    continue

                fmeta = lookup_file_meta(fname, self.config.metas)
                if fmeta is None:
                    self._skip(dir_base, fname, path, 'skip' if fname in self.config.metas else 'unknown')
                    continue

                tasks.append(FileTask(dir=directory, fname=fname, fmeta=fmeta, size=os.path.getsize(path)))
        return tasks

    def _skip(self, dir_base: str, fname: str, path: str, reason: str):
        logger.info(f'processing {dir_base}/{fname}, skipped ({reason})')
        prom.record_file_skipped(reason)
        self.state.files_skipped.append(path)

    def process_file(self, task: FileTask) -> FileResult:
        """Segment and extract one file into a fresh local Dictionary.

        Raises:
            OSError: If the file can not be read
        """
        logger.info(f'processing {task.label}')
        start_time = time()

        result = FileResult(task=task, dictionary=Dictionary())
        extractor = EntryExtractor(
            task.fmeta,
            result.dictionary,
            value_types=self.config.value_types,
            parts=self.parts,
        )
        segmenter = EntrySegmenter(task.fmeta, task.label)

        with open(task.path, 'rb') as f:
            for entry in segmenter.entries(f):
                for item in extractor.extract(entry):
                    self.state.emit(item)

        result.bytes_read = segmenter.offset
        result.entries = extractor.entries_matched
        result.dropped = extractor.entries_dropped
        result.min_ts = extractor.min_ts
        result.max_ts = extractor.max_ts
        result.duration = time() - start_time

        logger.debug(
            f'[PIPELINE] Completed {task.label}: {result.entries:,} entries, '
            f'{result.dropped:,} dropped, {len(result.dictionary):,} names in {result.duration:.2f}s'
        )
        return result

    def _collect(self, future: Future, pending: set[Future]):
        try:
            result = future.result()
        except Exception:
            for f in pending:
                f.cancel()
            raise
        self.state.merge_result(result)
        prom.record_file_processed(result.bytes_read, result.duration, result.entries, result.dropped)

    def run(self) -> RunState:
        """Process every discovered file and persist the requested outputs.

        Returns:
            The run's final state, holding the global Dictionary
        """
        start_time = time()

        tasks = self.discover()
        for task in tasks:
            self.state.register_file(task)

        logger.debug(
            f'[PIPELINE] Processing {len(tasks)} files with {self.workers} workers (queue size {self.queue_size})'
        )

        # Up to `workers` files run while up to `queue_size` more wait
        max_pending = self.workers + self.queue_size

        pending: set[Future] = set()
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            for task in tasks:
                # Block the producer while the queue is full
                while len(pending) >= max_pending:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        self._collect(future, pending)
                pending.add(executor.submit(self.process_file, task))

            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    self._collect(future, pending)

        with self.state.lock:
            self.state.emit_done = True

        logger.info(
            f'[PIPELINE] Completed: {self.state.files_processed} processed, '
            f'{len(self.state.files_skipped)} skipped, {self.state.emit_progress:,} fields emitted, '
            f'{len(self.state.dictionary):,} names in {time() - start_time:.2f}s'
        )

        if self.config.dict_path:
            save_dictionary(self.config.dict_path, self.state.snapshot())

        if self.config.graph_path and self.graph is not None:
            save_graph(self.config.graph_path, self.graph)

        return self.state


def save_dictionary(path: str, snapshot: DictionarySnapshot):
    """Write a dictionary snapshot as JSON.

    Raises:
        OSError: If the file can not be written
    """
    logger.info(f'emitting dictionary: {path}')
    with open(path, 'w', encoding='utf-8') as f:
        f.write(snapshot.to_json())
        f.write('\n')


def load_dictionary(path: str) -> DictionarySnapshot:
    with open(path, encoding='utf-8') as f:
        return DictionarySnapshot.model_validate_json(f.read())


def save_graph(path: str, graph: GraphCollector):
    logger.info(f'emitting graph data: {path}')
    with open(path, 'w', encoding='utf-8') as f:
        f.write(graph.finish().model_dump_json())
        f.write('\n')
