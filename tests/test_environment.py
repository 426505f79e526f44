import json
import subprocess

import pytest

from classtidy import vcs
from classtidy.environment import detect_environment, get_utility_framework_version, should_warn_version
from classtidy.errors import GitError


def _package(root, deps=None, dev=None):
    (root / 'package.json').write_text(json.dumps({'dependencies': deps or {},
                                                   'devDependencies': dev or {}}))


def test_next_config_wins(tmp_path):
    (tmp_path / 'next.config.mjs').write_text('export default {}')
    _package(tmp_path, {'vue': '^3'})
    assert detect_environment(tmp_path) == 'Next.js'


@pytest.mark.parametrize('deps, dev, expected', [
    ({'react': '^18'}, {}, 'React'),
    ({}, {'@angular/core': '^17'}, 'Angular'),
    ({'svelte': '^4'}, {}, 'Svelte'),
    ({'vue': '^3'}, {}, 'Vue'),
    ({'react': '^18', 'vue': '^3'}, {}, 'React'),
])
def test_framework_from_dependencies(tmp_path, deps, dev, expected):
    _package(tmp_path, deps, dev)
    assert detect_environment(tmp_path) == expected


def test_plain_html_and_unknown(tmp_path):
    assert detect_environment(tmp_path) == 'Unknown'
    (tmp_path / 'package.json').write_text('not json')
    assert detect_environment(tmp_path) == 'Unknown'
    (tmp_path / 'index.html').write_text('<html></html>')
    assert detect_environment(tmp_path) == 'HTML/CSS'


def test_tailwind_version(tmp_path):
    assert get_utility_framework_version(tmp_path) is None
    _package(tmp_path, {'tailwindcss': '3.4.1'}, {'tailwindcss': '3.3.0'})
    assert get_utility_framework_version(tmp_path) == '3.4.1'
    _package(tmp_path, {}, {'tailwindcss': '^3.4.0'})
    assert get_utility_framework_version(tmp_path) == '^3.4.0'
    _package(tmp_path, {'react': '^18'})
    assert get_utility_framework_version(tmp_path) is None


@pytest.mark.parametrize('version, warn', [
    (None, True), ('', True), ('latest', True), ('3.3.0', True), ('^3.3.5', True),
    ('~3.2.1', True), ('2.9.0', True), ('3.3', True),
    ('3.4.0', False), ('^3.4.1', False), ('~3.5.0', False), ('4.0.0', False),
    ('>=3.4.0', False), ('3.4', False),
])
def test_version_warning(version, warn):
    assert should_warn_version(version) is warn


def _fake_git(monkeypatch, returncode=0, stdout='', stderr='', exc=None):
    def run(cmd, **kwargs):
        assert cmd == ['git', 'status', '--porcelain']
        if exc is not None:
            raise exc
        return subprocess.CompletedProcess(cmd, returncode, stdout, stderr)
    monkeypatch.setattr(vcs.subprocess, 'run', run)


def test_clean_tree_proceeds(monkeypatch, tmp_path):
    _fake_git(monkeypatch)
    assert vcs.check_clean(tmp_path)


def test_dirty_tree_blocks_unless_ignored(monkeypatch, tmp_path):
    _fake_git(monkeypatch, stdout=' M src/App.vue\n')
    with pytest.raises(GitError) as info:
        vcs.check_clean(tmp_path)
    assert not info.value.recoverable
    assert vcs.check_clean(tmp_path, ignore_git=True)


def test_not_a_repository_proceeds(monkeypatch, tmp_path):
    _fake_git(monkeypatch, returncode=128, stderr='fatal: not a git repository')
    assert vcs.check_clean(tmp_path)


def test_git_missing_proceeds(monkeypatch, tmp_path):
    _fake_git(monkeypatch, exc=FileNotFoundError(2, 'No such file', 'git'))
    assert vcs.check_clean(tmp_path)
