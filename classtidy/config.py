"""
Settings for a run: defaults < environment / .env < command line.
"""
from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_PATH = './**/*.{js,jsx,ts,tsx,html,vue,svelte}'
DEFAULT_LOG_DIR = '~/.classtidy/logs'
DEFAULT_LOG_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_LOG_MAX_FILES = 30
LOG_FORMAT = '[%(levelname)s] %(message)s'
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

_TRUE = ('1', 'true', 'yes', 'on')
_FALSE = ('0', 'false', 'no', 'off', '')


@dataclass
class Settings:
    path: str = DEFAULT_PATH
    concurrency: Optional[int] = None
    chunk_size: Optional[int] = None
    max_memory_mb: Optional[int] = None
    ignore_git: bool = False
    log_level: str = 'WARNING'
    log_enabled: bool = False
    log_dir: str = DEFAULT_LOG_DIR
    log_max_bytes: int = DEFAULT_LOG_MAX_BYTES
    log_max_files: int = DEFAULT_LOG_MAX_FILES


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be true or false, got {raw!r}")


def _positive(name: str, value: Optional[int]) -> Optional[int]:
    if value is not None and value < 1:
        raise ConfigurationError(f"{name} must be a positive integer, got {value}")
    return value


def load_settings(overrides: Optional[Dict[str, Any]] = None) -> Settings:
    """Build Settings from .env/environment, then apply non-None overrides."""
    load_dotenv()
    settings = Settings(
        path=os.getenv('CLASSTIDY_PATH') or DEFAULT_PATH,
        concurrency=_env_int('CLASSTIDY_CONCURRENCY', None),
        chunk_size=_env_int('CLASSTIDY_CHUNK_SIZE', None),
        max_memory_mb=_env_int('CLASSTIDY_MAX_MEMORY_MB', None),
        ignore_git=_env_bool('CLASSTIDY_IGNORE_GIT', False),
        log_level=(os.getenv('CLASSTIDY_LOG_LEVEL') or 'WARNING'),
        log_enabled=_env_bool('CLASSTIDY_LOG_ENABLED', False),
        log_dir=os.getenv('CLASSTIDY_LOG_DIR') or DEFAULT_LOG_DIR,
        log_max_bytes=_env_int('CLASSTIDY_LOG_MAX_BYTES', DEFAULT_LOG_MAX_BYTES),
        log_max_files=_env_int('CLASSTIDY_LOG_MAX_FILES', DEFAULT_LOG_MAX_FILES),
    )
    for key, value in (overrides or {}).items():
        if value is None:
            continue
        if not hasattr(settings, key):
            raise ConfigurationError(f"Unknown setting: {key}")
        setattr(settings, key, value)

    settings.log_level = settings.log_level.upper()
    if settings.log_level not in LOG_LEVELS:
        raise ConfigurationError(f"Unknown log level: {settings.log_level}",
                                 suggestion=f"Use one of {', '.join(LOG_LEVELS)}")
    _positive('concurrency', settings.concurrency)
    _positive('chunk size', settings.chunk_size)
    _positive('max memory', settings.max_memory_mb)
    _positive('log max bytes', settings.log_max_bytes)
    _positive('log max files', settings.log_max_files)
    return settings


def setup_logging(settings: Settings, stream=None) -> None:
    root = logging.getLogger('classtidy')
    for h in list(root.handlers):
        root.removeHandler(h)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(settings.log_level)

    errlog = logging.getLogger('classtidy.errorlog')
    errlog.propagate = False
    for h in list(errlog.handlers):
        errlog.removeHandler(h)
        h.close()
    if not settings.log_enabled:
        errlog.addHandler(logging.NullHandler())
        return
    try:
        log_dir = Path(settings.log_dir).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / f"error-{date.today().isoformat()}.jsonl",
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_max_files,
            encoding='utf-8',
        )
    except OSError as e:
        logger.warning("error log disabled, cannot write to %s: %s", settings.log_dir, e)
        errlog.addHandler(logging.NullHandler())
        return
    file_handler.setFormatter(logging.Formatter('%(message)s'))
    errlog.addHandler(file_handler)
    errlog.setLevel(logging.ERROR)
