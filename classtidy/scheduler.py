"""
File scheduler: chunked, bounded-concurrency rewriting with memory pacing.

The path list is cut into fixed-size chunks in input order. Up to
``concurrency`` chunks run at once on a thread pool; inside a chunk files
are handled one after another. Before each batch the process RSS is checked
against the memory threshold and, when it is over, the scheduler waits (with
a GC hint) for at most a few seconds before carrying on anyway.
"""
from __future__ import annotations

import gc
import logging
import math
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Sequence, Tuple

import psutil

from .errors import (ConfigurationError, ConversionError, Session,
                     classify_content_error, classify_file_error)
from .rules import RuleFn, apply_rules, resolve_rules

logger = logging.getLogger(__name__)

MB = 1024 * 1024
MIN_MEMORY_MB = 256
MAX_WORKERS = 8
WORKER_CORE_FRACTION = 0.75
CHUNKS_PER_WORKER = 3
MAX_CHUNK_SIZE = 10
THRESHOLD_FRACTION = 0.8
PAUSE_POLL_SECONDS = 0.1
PAUSE_TIMEOUT_SECONDS = 5.0
PARALLEL_MIN_FILES = 5

ProgressFn = Callable[[int, int, str], None]


@dataclass(frozen=True)
class ProcessingResult:
    path: str
    success: bool
    changes: int = 0
    error: Optional[ConversionError] = None
    elapsed: float = 0.0

    @property
    def changed(self) -> bool:
        return self.changes > 0


@dataclass
class SchedulerOptions:
    concurrency: Optional[int] = None
    chunk_size: Optional[int] = None
    max_memory_mb: Optional[int] = None
    memory_threshold_mb: Optional[float] = None
    progress: Optional[ProgressFn] = None
    session: Optional[Session] = None
    write: bool = True


# -- memory -------------------------------------------------------------------

def current_usage_mb() -> float:
    return psutil.Process().memory_info().rss / MB


def system_memory_mb() -> Tuple[float, float, float]:
    """(total, free, usable) in MB; usable is what a run may plan for."""
    vm = psutil.virtual_memory()
    total = vm.total / MB
    free = vm.available / MB
    usable = max(MIN_MEMORY_MB, min(free * 0.7, total * 0.5))
    return total, free, usable


def memory_ceiling_mb(max_memory_mb: Optional[float] = None) -> float:
    if max_memory_mb and max_memory_mb > 0:
        return float(max_memory_mb)
    return system_memory_mb()[2]


def wait_for_memory(threshold_mb: float, timeout: float = PAUSE_TIMEOUT_SECONDS,
                    interval: float = PAUSE_POLL_SECONDS) -> bool:
    """Poll until RSS drops under ``threshold_mb``; False if we gave up."""
    deadline = time.monotonic() + timeout
    while current_usage_mb() > threshold_mb:
        if time.monotonic() >= deadline:
            logger.warning("memory still above %.0f MB after %.1fs, continuing", threshold_mb, timeout)
            return False
        gc.collect()
        time.sleep(interval)
    return True


# -- chunking -----------------------------------------------------------------

def default_concurrency() -> int:
    cores = os.cpu_count() or 1
    return max(1, min(MAX_WORKERS, int(cores * WORKER_CORE_FRACTION)))


def optimal_chunk_size(total_files: int, workers: int) -> int:
    target = max(1, workers) * CHUNKS_PER_WORKER
    return min(MAX_CHUNK_SIZE, max(1, math.ceil(total_files / target)))


def chunk_files(paths: Sequence[str], size: int) -> List[List[str]]:
    if size < 1:
        raise ConfigurationError(f"Chunk size must be positive, got {size}")
    return [list(paths[i:i + size]) for i in range(0, len(paths), size)]


# -- per file -----------------------------------------------------------------

def _fail(path: str, err: ConversionError, session: Session, started: float) -> ProcessingResult:
    session.record_error(err)
    if not session.should_continue(err):
        session.halt()
        raise err
    return ProcessingResult(path, False, 0, err, time.perf_counter() - started)


def process_file(path: str, rule_names: Sequence[str], rule_table: Optional[Mapping[str, RuleFn]],
                 session: Session, write: bool = True) -> ProcessingResult:
    started = time.perf_counter()
    target = Path(path)
    try:
        # newline='' on both ends keeps the file's own line endings
        with target.open('r', encoding='utf-8', newline='') as f:
            content = f.read()
    except OSError as exc:
        return _fail(path, classify_file_error(exc, path), session, started)
    except UnicodeDecodeError as exc:
        return _fail(path, classify_content_error(exc, path), session, started)

    outcome = apply_rules(content, path, rule_names, rule_table)
    if outcome.error is not None:
        # nothing is written; the file keeps its original content
        return _fail(path, outcome.error, session, started)

    if outcome.changed and write:
        try:
            with target.open('w', encoding='utf-8', newline='') as f:
                f.write(outcome.new_content)
        except OSError as exc:
            return _fail(path, classify_file_error(exc, path), session, started)
        logger.debug("%s: %s", path, ', '.join(outcome.applied))

    return ProcessingResult(path, True, len(outcome.applied), None, time.perf_counter() - started)


def _run_chunk(chunk: Sequence[str], rule_names: Sequence[str],
               rule_table: Optional[Mapping[str, RuleFn]], session: Session,
               progress: Optional[ProgressFn], progress_lock: threading.Lock,
               write: bool) -> List[ProcessingResult]:
    results: List[ProcessingResult] = []
    for path in chunk:
        if session.halted:
            break
        try:
            result = process_file(path, rule_names, rule_table, session, write)
        except ConversionError:
            raise
        except Exception as exc:
            result = _fail(path, classify_content_error(exc, path), session, time.perf_counter())
        results.append(result)
        with progress_lock:
            done = session.record_file(result.changed)
            if progress is not None:
                progress(done, session.total_files, path)
    return results


# -- entry points -------------------------------------------------------------

def _prepare(paths: Sequence[str], rule_names: Sequence[str],
             rule_table: Optional[Mapping[str, RuleFn]], session: Optional[Session]) -> Session:
    resolve_rules(rule_names, rule_table)
    if session is None:
        return Session(len(paths))
    session.reset(len(paths))
    return session


def process_files(paths: Sequence[str], rule_names: Sequence[str],
                  rule_table: Optional[Mapping[str, RuleFn]] = None,
                  options: Optional[SchedulerOptions] = None) -> List[ProcessingResult]:
    options = options or SchedulerOptions()
    paths = list(paths)
    session = _prepare(paths, rule_names, rule_table, options.session)

    workers = options.concurrency if options.concurrency is not None else default_concurrency()
    if workers < 1:
        raise ConfigurationError(f"Concurrency must be at least 1, got {workers}")
    chunk_size = options.chunk_size if options.chunk_size is not None else optimal_chunk_size(len(paths), workers)
    chunks = chunk_files(paths, chunk_size)
    threshold = options.memory_threshold_mb
    if threshold is None:
        threshold = memory_ceiling_mb(options.max_memory_mb) * THRESHOLD_FRACTION

    logger.info("processing %d files in %d chunks of up to %d with %d workers",
                len(paths), len(chunks), chunk_size, workers)

    progress_lock = threading.Lock()
    results: List[ProcessingResult] = []
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix='classtidy') as executor:
        for i in range(0, len(chunks), workers):
            if session.halted:
                break
            usage = current_usage_mb()
            session.observe_memory(usage)
            if usage > threshold:
                logger.info("memory %.0f MB over threshold %.0f MB, pausing", usage, threshold)
                wait_for_memory(threshold * THRESHOLD_FRACTION)

            batch = chunks[i:i + workers]
            futures = [executor.submit(_run_chunk, chunk, rule_names, rule_table, session,
                                       options.progress, progress_lock, options.write)
                       for chunk in batch]
            try:
                for future in futures:
                    results.extend(future.result())
            except ConversionError:
                session.halt()
                raise
    return results


def process_files_sequential(paths: Sequence[str], rule_names: Sequence[str],
                             rule_table: Optional[Mapping[str, RuleFn]] = None,
                             progress: Optional[ProgressFn] = None,
                             session: Optional[Session] = None,
                             write: bool = True) -> List[ProcessingResult]:
    paths = list(paths)
    session = _prepare(paths, rule_names, rule_table, session)
    return _run_chunk(paths, rule_names, rule_table, session, progress, threading.Lock(), write)


def auto_process_files(paths: Sequence[str], rule_names: Sequence[str],
                       rule_table: Optional[Mapping[str, RuleFn]] = None,
                       options: Optional[SchedulerOptions] = None) -> List[ProcessingResult]:
    """Concurrent for larger runs with memory headroom, sequential otherwise."""
    options = options or SchedulerOptions()
    paths = list(paths)
    headroom = memory_ceiling_mb(options.max_memory_mb) - current_usage_mb()
    if len(paths) > PARALLEL_MIN_FILES and headroom > MIN_MEMORY_MB:
        if options.memory_threshold_mb is None:
            options = replace(options, memory_threshold_mb=headroom * THRESHOLD_FRACTION)
        return process_files(paths, rule_names, rule_table, options)
    logger.info("processing %d files sequentially", len(paths))
    return process_files_sequential(paths, rule_names, rule_table, options.progress,
                                    options.session, options.write)
