"""Git working-tree check run before files are rewritten."""
from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from .errors import GitError, classify_git_error

logger = logging.getLogger(__name__)


def working_tree_status(root) -> str:
    """Output of ``git status --porcelain`` in ``root``; raises GitError."""
    try:
        proc = subprocess.run(
            ['git', 'status', '--porcelain'],
            cwd=str(Path(root)),
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        raise classify_git_error(e) from e
    if proc.returncode != 0:
        raise classify_git_error(RuntimeError(proc.stderr.strip() or f"git exited with {proc.returncode}"))
    return proc.stdout


def check_clean(root, ignore_git: bool = False) -> bool:
    """Decide whether rewriting may proceed.

    Outside a repository, or without git installed, the check is skipped with
    a warning. A dirty tree raises GitError unless ``ignore_git`` is set.
    """
    try:
        status = working_tree_status(root)
    except GitError as e:
        logger.warning("Not a Git repository or Git not installed, skipping clean check (%s)", e.message)
        return True
    if status.strip() and not ignore_git:
        raise GitError('Git repository is not clean', recoverable=False,
                       suggestion='Commit or stash your changes before running, or use --ignore-git')
    return True
