"""
Error taxonomy, classification and the per-run Session.

Failures are sorted into four kinds:

  file     permission, missing file, directory, disk full, fd exhaustion
  content  encoding, memory, pattern failures while rewriting
  git      version-control probing (outside the rewrite core)
  config   invalid scheduler / rule configuration, never recoverable

A Session is created for each run and handed to every worker. It is the
only state shared between workers, so every mutation goes through its lock.
"""
from __future__ import annotations

import errno
import json
import logging
import re
import threading
import time
import uuid
from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional

import psutil

logger = logging.getLogger(__name__)
# JSON lines for the optional on-disk error log (see config.setup_logging)
error_log = logging.getLogger('classtidy.errorlog')

FILE = 'file'
CONTENT = 'content'
GIT = 'git'
CONFIG = 'config'
KINDS = (FILE, CONTENT, GIT, CONFIG)

ERROR_THRESHOLD = 10
ERROR_BUFFER_SIZE = 100


class ConversionError(Exception):
    kind = CONTENT

    def __init__(self, message: str, path: Optional[str] = None, code: Optional[str] = None,
                 suggestion: Optional[str] = None, recoverable: bool = True,
                 line: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.path = path
        self.code = code
        self.suggestion = suggestion
        self.recoverable = recoverable
        self.line = line

    @property
    def severity(self) -> str:
        if self.kind == CONFIG:
            return 'critical'
        if self.kind == GIT:
            return 'medium' if self.recoverable else 'high'
        if self.kind == FILE:
            if self.code in ('ENOSPC', 'EMFILE', 'ENFILE'):
                return 'high'
            return 'medium'
        return 'low'

    def to_dict(self) -> Dict[str, object]:
        return {
            'name': type(self).__name__,
            'kind': self.kind,
            'message': self.message,
            'path': self.path,
            'code': self.code,
            'line': self.line,
            'suggestion': self.suggestion,
            'recoverable': self.recoverable,
            'severity': self.severity,
        }

    def __str__(self) -> str:
        if self.path:
            return f"{self.message}: {self.path}"
        return self.message


class FileSystemError(ConversionError):
    kind = FILE


class ContentProcessingError(ConversionError):
    kind = CONTENT


class GitError(ConversionError):
    kind = GIT


class ConfigurationError(ConversionError):
    kind = CONFIG

    def __init__(self, message: str, suggestion: Optional[str] = None):
        super().__init__(message, suggestion=suggestion, recoverable=False)


_FILE_ERRORS = {
    errno.EACCES: ('Permission denied: cannot read or write file',
                   'Check file permissions or run with appropriate privileges'),
    errno.EPERM: ('Permission denied: cannot read or write file',
                  'Check file permissions or run with appropriate privileges'),
    errno.ENOENT: ('File not found',
                   'Verify the file path is correct and the file exists'),
    errno.EISDIR: ('Expected a file but found a directory',
                   'Check that the path points to a file, not a directory'),
    errno.ENOSPC: ('Insufficient disk space',
                   'Free up disk space before continuing'),
    errno.EMFILE: ('Too many open files',
                   'Close other applications or increase system file limits'),
    errno.ENFILE: ('Too many open files',
                   'Close other applications or increase system file limits'),
}


def classify_file_error(exc: BaseException, path: str) -> ConversionError:
    if isinstance(exc, ConversionError):
        return exc
    num = getattr(exc, 'errno', None)
    code = errno.errorcode.get(num) if num is not None else None
    if num in _FILE_ERRORS:
        message, suggestion = _FILE_ERRORS[num]
        return FileSystemError(message, path, code, suggestion)
    return FileSystemError(f"File system error: {exc}", path, code,
                           'Check file system status and permissions')


def classify_content_error(exc: BaseException, path: str,
                           line: Optional[int] = None) -> ConversionError:
    if isinstance(exc, ConversionError):
        return exc
    if isinstance(exc, UnicodeDecodeError):
        return ContentProcessingError('File contains invalid UTF-8 encoding', path, line=line,
                                      suggestion='Convert file to UTF-8 encoding or skip binary files')
    text = str(exc).lower()
    if isinstance(exc, MemoryError) or 'memory' in text or 'allocation' in text:
        return ContentProcessingError('File too large to process in memory', path, line=line,
                                      suggestion='Consider processing smaller files or increasing available memory')
    if isinstance(exc, re.error) or 'regex' in text or 'pattern' in text:
        return ContentProcessingError('Pattern matching failed', path, line=line,
                                      suggestion='File may contain malformed class attributes')
    return ContentProcessingError(f"Content processing failed: {exc}", path, line=line,
                                  suggestion='Check file format and content structure')


def classify_git_error(exc: BaseException) -> GitError:
    if isinstance(exc, GitError):
        return exc
    text = str(exc).lower()
    if 'not a git repository' in text:
        return GitError('Not a Git repository',
                        suggestion='Use --ignore-git to skip Git checks or initialize a Git repository')
    if isinstance(exc, FileNotFoundError) or 'git not found' in text or 'command not found' in text:
        return GitError('Git is not installed or not in PATH',
                        suggestion='Install Git or use --ignore-git to skip Git checks')
    if 'uncommitted changes' in text:
        return GitError('Repository has uncommitted changes',
                        suggestion='Commit or stash changes before running, or use --ignore-git')
    return GitError(f"Git operation failed: {exc}", suggestion='Check Git status and configuration')


def format_error(err: ConversionError) -> str:
    lines = [f"[{err.kind.upper()}] {err.message}"]
    if err.path:
        lines.append(f"  {err.path}" + (f":{err.line}" if err.line else ''))
    if err.suggestion:
        lines.append(f"  Suggestion: {err.suggestion}")
    return '\n'.join(lines)


class Session:
    """Error counts and progress for one run."""

    def __init__(self, total_files: int = 0, threshold: int = ERROR_THRESHOLD):
        self._lock = threading.Lock()
        self.session_id = uuid.uuid4().hex
        self.started_at = datetime.now()
        self._t0 = time.perf_counter()
        self.threshold = threshold
        self.total_files = total_files
        self.processed_files = 0
        self.changed_files = 0
        self.error_counts: Dict[str, int] = {k: 0 for k in KINDS}
        self.error_frequency: Counter = Counter()
        self.errors_by_file: Counter = Counter()
        self.recent_errors: List[ConversionError] = []
        self.peak_memory_mb = 0.0
        self.halted = False

    def reset(self, total_files: int) -> None:
        with self._lock:
            self.total_files = total_files
            self.processed_files = 0
            self.changed_files = 0
            self.error_counts = {k: 0 for k in KINDS}
            self.error_frequency = Counter()
            self.errors_by_file = Counter()
            self.recent_errors = []
            self.halted = False
            self.started_at = datetime.now()
            self._t0 = time.perf_counter()

    def record_error(self, err: ConversionError) -> None:
        with self._lock:
            self.error_counts[err.kind] = self.error_counts.get(err.kind, 0) + 1
            self.error_frequency[f"{err.kind}:{err.message}"] += 1
            if err.path:
                self.errors_by_file[err.path] += 1
            self.recent_errors.append(err)
            if len(self.recent_errors) > ERROR_BUFFER_SIZE:
                self.recent_errors = self.recent_errors[-ERROR_BUFFER_SIZE:]
            processed = self.processed_files
        logger.error(format_error(err))
        error_log.error(json.dumps({
            'session': self.session_id,
            'timestamp': datetime.now().isoformat(),
            'error': err.to_dict(),
            'total_files': self.total_files,
            'processed_files': processed,
        }, ensure_ascii=False))

    def should_continue(self, err: ConversionError) -> bool:
        if not err.recoverable:
            return False
        with self._lock:
            return self.error_counts.get(err.kind, 0) < self.threshold

    def record_file(self, changed: bool) -> int:
        with self._lock:
            self.processed_files += 1
            if changed:
                self.changed_files += 1
            return self.processed_files

    def increment_processed(self) -> int:
        return self.record_file(False)

    def observe_memory(self, usage_mb: float) -> None:
        with self._lock:
            if usage_mb > self.peak_memory_mb:
                self.peak_memory_mb = usage_mb

    def halt(self) -> None:
        with self._lock:
            self.halted = True

    @property
    def total_errors(self) -> int:
        return sum(self.error_counts.values())

    def success_rate(self) -> float:
        if self.total_files <= 0:
            return 0.0
        ok = max(0, self.processed_files - self.total_errors)
        return ok / self.total_files * 100

    def recommendations(self) -> List[str]:
        recs = []
        if self.error_counts[FILE]:
            recs.append('Check file permissions and ensure the tool has read/write access')
        if self.error_counts[GIT]:
            recs.append('Consider using --ignore-git if Git integration is not needed')
        if self.total_files and self.total_errors / self.total_files * 100 > 50:
            recs.append('High error rate detected - consider running on a smaller subset first')
        if any('memory' in e.message.lower() for e in self.recent_errors):
            recs.append('Consider processing files in smaller batches to reduce memory usage')
        return recs

    def generate_report(self) -> str:
        rate = self.success_rate()
        if self.total_errors == 0:
            head = f"[DONE] All {self.processed_files} files processed successfully ({rate:.1f}% success rate)"
            if self.changed_files:
                return head + f"\n[DONE] Changed {self.changed_files} files"
            return head + "\n[DONE] No changes were needed"

        lines = [
            '[SUMMARY] Processing summary',
            f"  Total files: {self.total_files}",
            f"  Processed: {self.processed_files}",
            f"  Changed: {self.changed_files}",
            f"  Success rate: {rate:.1f}%",
            '',
            f"[SUMMARY] Errors occurred: {self.total_errors}",
        ]
        for kind in KINDS:
            if self.error_counts[kind]:
                lines.append(f"  {kind}: {self.error_counts[kind]}")
        recs = self.recommendations()
        if recs:
            lines.append('')
            lines.append('[SUMMARY] Recommendations')
            lines.extend(f"  - {r}" for r in recs)
        return '\n'.join(lines)

    def summary(self) -> Dict[str, object]:
        elapsed = time.perf_counter() - self._t0
        try:
            rss_mb = psutil.Process().memory_info().rss / (1024 * 1024)
        except psutil.Error:
            rss_mb = 0.0
        return {
            'session_id': self.session_id,
            'start_time': self.started_at.isoformat(),
            'end_time': datetime.now().isoformat(),
            'duration_seconds': round(elapsed, 3),
            'total_files': self.total_files,
            'files_processed': self.processed_files,
            'files_changed': self.changed_files,
            'total_errors': self.total_errors,
            'errors_by_type': dict(self.error_counts),
            'errors_by_file': dict(self.errors_by_file),
            'peak_memory_mb': round(max(self.peak_memory_mb, rss_mb), 1),
            'average_seconds_per_file': round(elapsed / self.processed_files, 4) if self.processed_files else 0.0,
            'recommendations': self.recommendations(),
        }
