import logging

import pytest

ENV_VARS = (
    'CLASSTIDY_PATH', 'CLASSTIDY_CONCURRENCY', 'CLASSTIDY_CHUNK_SIZE', 'CLASSTIDY_MAX_MEMORY_MB',
    'CLASSTIDY_LOG_LEVEL', 'CLASSTIDY_LOG_ENABLED', 'CLASSTIDY_LOG_DIR', 'CLASSTIDY_LOG_MAX_BYTES',
    'CLASSTIDY_LOG_MAX_FILES', 'CLASSTIDY_IGNORE_GIT',
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    for name in ('classtidy', 'classtidy.errorlog'):
        log = logging.getLogger(name)
        for h in list(log.handlers):
            log.removeHandler(h)
            h.close()
    logging.getLogger('classtidy').setLevel(logging.NOTSET)
    logging.getLogger('classtidy.errorlog').propagate = True
