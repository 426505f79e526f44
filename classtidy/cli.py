from __future__ import annotations

import argparse
import glob
import logging
import os
import re
import sys
from typing import List, Optional, Sequence

from . import __version__
from .config import load_settings, setup_logging
from .environment import detect_environment, get_utility_framework_version, should_warn_version
from .errors import ConversionError, Session, format_error
from .rules import RULES
from .scheduler import SchedulerOptions, auto_process_files, process_files, process_files_sequential
from .vcs import check_clean

logger = logging.getLogger(__name__)

EXCLUDED_DIRS = ('node_modules',)
_BRACE_RE = re.compile(r'\{([^{}]*,[^{}]*)\}')


def expand_braces(pattern: str) -> List[str]:
    """'src/*.{js,ts}' -> ['src/*.js', 'src/*.ts']"""
    m = _BRACE_RE.search(pattern)
    if not m:
        return [pattern]
    out: List[str] = []
    for option in m.group(1).split(','):
        out.extend(expand_braces(pattern[:m.start()] + option + pattern[m.end():]))
    return out


def find_files(pattern: str) -> List[str]:
    seen = set()
    files: List[str] = []
    for pat in expand_braces(pattern):
        for path in sorted(glob.glob(pat, recursive=True)):
            if not os.path.isfile(path):
                continue
            parts = os.path.normpath(path).split(os.sep)
            if any(d in parts for d in EXCLUDED_DIRS):
                continue
            if path in seen:
                continue
            seen.add(path)
            files.append(path)
    return files


def parse_conversions(values: Optional[Sequence[str]]) -> List[str]:
    names: List[str] = []
    for value in values or []:
        for name in value.split(','):
            name = name.strip()
            if name and name not in names:
                names.append(name)
    return names


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='classtidy',
        description="Merge redundant utility class pairs (w-4 h-4 -> size-4, ...) in templates.")
    parser.add_argument("-c", "--conversions", action="append", metavar="NAME",
                        help=f"Conversion to run, repeatable or comma separated ({', '.join(RULES)})")
    parser.add_argument("-p", "--path", dest="path", default=None,
                        help="Glob of files to convert; supports {a,b} and ** (env CLASSTIDY_PATH)")
    parser.add_argument("--ignore-git", dest="ignore_git", action="store_true", default=None,
                        help="Skip the Git clean working tree check")
    parser.add_argument("-m", "--max-memory", dest="max_memory_mb", type=int, default=None,
                        help="Memory ceiling in MB (default: derived from system memory)")
    parser.add_argument("--concurrency", type=int, default=None, help="Worker count")
    parser.add_argument("--sequential", action="store_true", help="Process files one by one")
    parser.add_argument("--dry-run", dest="dry_run", action="store_true",
                        help="Report what would change without writing files")
    parser.add_argument("--log-level", dest="log_level", default=None,
                        help="DEBUG, INFO, WARNING, ERROR (env CLASSTIDY_LOG_LEVEL)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings({
            'path': args.path,
            'ignore_git': args.ignore_git,
            'max_memory_mb': args.max_memory_mb,
            'concurrency': args.concurrency,
            'log_level': args.log_level,
        })
    except ConversionError as e:
        print(format_error(e), file=sys.stderr)
        return 1
    setup_logging(settings)

    conversions = parse_conversions(args.conversions)
    if not conversions:
        print("[ERROR] No conversions selected. Use -c with one or more of:")
        for name in RULES:
            print(f"  {name}")
        print('Example: classtidy -c size,margin -p "./src/**/*.{js,jsx,ts,tsx,html}"')
        return 2

    cwd = os.getcwd()
    env = detect_environment(cwd)
    if env != 'Unknown':
        print(f"[INFO] {env} environment detected")
    if should_warn_version(get_utility_framework_version(cwd)):
        print("[WARN] For full compatibility, especially with 'size' conversions, "
              "use tailwindcss v3.4 or later.")

    try:
        check_clean(cwd, settings.ignore_git)
    except ConversionError as e:
        print(format_error(e), file=sys.stderr)
        return 1

    files = find_files(settings.path)
    if not files:
        print(f"[INFO] No files found matching {settings.path}")
        return 0
    print(f"[INFO] Found {len(files)} files to process")

    session = Session(len(files))

    def progress(done: int, total: int, path: str) -> None:
        logger.info("[%5.1f%%] %s", done / total * 100, path)

    try:
        if args.sequential:
            results = process_files_sequential(files, conversions, progress=progress,
                                               session=session, write=not args.dry_run)
        else:
            options = SchedulerOptions(
                concurrency=settings.concurrency,
                chunk_size=settings.chunk_size,
                max_memory_mb=settings.max_memory_mb,
                progress=progress,
                session=session,
                write=not args.dry_run,
            )
            if settings.concurrency is not None:
                results = process_files(files, conversions, options=options)
            else:
                results = auto_process_files(files, conversions, options=options)
    except ConversionError as e:
        print("[ERROR] Processing failed with fatal error", file=sys.stderr)
        print(format_error(e), file=sys.stderr)
        return 1

    ok = sum(1 for r in results if r.success)
    failed = len(results) - ok
    changed = sum(1 for r in results if r.changed)
    verb = 'Would change' if args.dry_run else 'Applied changes to'
    print('')
    if failed:
        print(f"[WARN] Processed {ok} files successfully, {failed} failed")
    else:
        print(f"[SUCCESS] Processed {ok} files")
    if changed:
        print(f"[SUCCESS] {verb} {changed} files")
    elif not failed:
        print("[INFO] No changes were needed")
    print(session.generate_report())
    return 0
