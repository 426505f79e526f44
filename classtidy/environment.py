"""Project probing: which front-end framework, which tailwindcss version."""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

NEXT_CONFIGS = ('next.config.js', 'next.config.mjs')
# checked in this order; the first dependency present wins
FRAMEWORK_DEPENDENCIES: Tuple[Tuple[str, str], ...] = (
    ('react', 'React'),
    ('@angular/core', 'Angular'),
    ('svelte', 'Svelte'),
    ('vue', 'Vue'),
)
MIN_SIZE_UTILITY_VERSION = (3, 4)

_VERSION_RE = re.compile(r'(\d+)\.(\d+)')


def read_package_json(root) -> Optional[Dict]:
    path = Path(root) / 'package.json'
    if not path.is_file():
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.debug("cannot read %s: %s", path, e)
        return None
    return data if isinstance(data, dict) else None


def detect_environment(root) -> str:
    root = Path(root)
    if any((root / name).exists() for name in NEXT_CONFIGS):
        return 'Next.js'

    pkg = read_package_json(root)
    if pkg:
        deps = {**(pkg.get('dependencies') or {}), **(pkg.get('devDependencies') or {})}
        for dep, name in FRAMEWORK_DEPENDENCIES:
            if deps.get(dep):
                return name

    if any(p.is_file() and p.suffix in ('.html', '.css') for p in root.iterdir()):
        return 'HTML/CSS'
    return 'Unknown'


def get_utility_framework_version(root) -> Optional[str]:
    """The tailwindcss version range from package.json; dependencies beat devDependencies."""
    pkg = read_package_json(root)
    if not pkg:
        return None
    for section in ('dependencies', 'devDependencies'):
        version = (pkg.get(section) or {}).get('tailwindcss')
        if version:
            return version
    return None


def should_warn_version(version: Optional[str]) -> bool:
    """True unless the range clearly targets 3.4 or later."""
    if not version:
        return True
    m = _VERSION_RE.search(version)
    if not m:
        return True
    return (int(m.group(1)), int(m.group(2))) < MIN_SIZE_UTILITY_VERSION
