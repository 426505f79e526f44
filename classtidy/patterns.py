"""
Pattern registry for class-bearing attributes.

Each host syntax (plain HTML attribute, JSX ``className``, Vue/Angular
bindings, Svelte, back-tick template literals, multi-line values) gets one
PatternMatcher. Matching is bounded regex work over attribute syntax, not a
parse of the document: an occurrence that does not match cleanly (for
example an unterminated quote) is skipped, and everything else in the file is
still found.

Matches are half-open character spans ``[start, end)`` into the content.
"""
from __future__ import annotations

import bisect
import re
from dataclasses import dataclass
from pathlib import PurePath
from typing import Callable, Dict, Iterator, List, Sequence, Tuple


# value never contains a quote or '<', so an unterminated value cannot run
# on into the following markup
_QUOTED = r'(?P<q>["\'])(?P<value>[^"\'<]*)(?P=q)'
_QUOTED_MULTILINE = r'(?P<q>["\'])(?P<value>[^"\'<]*\n[^"\'<]*)(?P=q)'
_ATTR_START = r'(?<![\w-])'

_TEMPLATE_LITERAL_RE = re.compile(r'`[^`]*`')

Span = Tuple[int, int]


@dataclass(frozen=True)
class PatternMatcher:
    syntax: str
    frameworks: Tuple[str, ...]
    recognize: Callable[[str], Iterator[Span]]
    extract: Callable[[str], str]
    reconstruct: Callable[[Sequence[str], str], str]

    def __repr__(self) -> str:
        return f"<PatternMatcher {self.syntax}>"


@dataclass(frozen=True)
class ClassAttributeMatch:
    text: str
    value: str
    start: int
    end: int
    matcher: PatternMatcher


def _extractor(regex: re.Pattern) -> Callable[[str], str]:
    def extract(text: str) -> str:
        m = regex.fullmatch(text)
        return m.group('value') if m else ''
    return extract


def _reconstructor(regex: re.Pattern) -> Callable[[Sequence[str], str], str]:
    # only the value is rewritten; quotes, braces and binding prefix stay as found
    def reconstruct(tokens: Sequence[str], original: str) -> str:
        m = regex.fullmatch(original)
        if not m:
            raise ValueError(f"occurrence no longer matches its pattern: {original[:80]!r}")
        return original[:m.start('value')] + ' '.join(tokens) + original[m.end('value'):]
    return reconstruct


def _regex_recognizer(regex: re.Pattern) -> Callable[[str], Iterator[Span]]:
    def recognize(content: str) -> Iterator[Span]:
        for m in regex.finditer(content):
            yield m.start(), m.end()
    return recognize


def _regex_matcher(syntax: str, frameworks: Sequence[str], pattern: str) -> PatternMatcher:
    regex = re.compile(pattern)
    return PatternMatcher(
        syntax=syntax,
        frameworks=tuple(frameworks),
        recognize=_regex_recognizer(regex),
        extract=_extractor(regex),
        reconstruct=_reconstructor(regex),
    )


def _template_literal_matcher(frameworks: Sequence[str]) -> PatternMatcher:
    attr = re.compile(_ATTR_START + r'class\s*=\s*' + _QUOTED)

    def recognize(content: str) -> Iterator[Span]:
        for lit in _TEMPLATE_LITERAL_RE.finditer(content):
            body_start = lit.start() + 1
            body = content[body_start:lit.end() - 1]
            for m in attr.finditer(body):
                yield body_start + m.start(), body_start + m.end()

    return PatternMatcher(
        syntax='template-literal',
        frameworks=tuple(frameworks),
        recognize=recognize,
        extract=_extractor(attr),
        reconstruct=_reconstructor(attr),
    )


PATTERN_MATCHERS: Tuple[PatternMatcher, ...] = (
    _regex_matcher('html', ('html', 'php', 'django', 'erb'),
                   _ATTR_START + r'class\s*=\s*' + _QUOTED),
    _regex_matcher('html-multiline', ('html', 'php', 'django', 'erb'),
                   _ATTR_START + r'class\s*=\s*' + _QUOTED_MULTILINE),
    _regex_matcher('jsx', ('react', 'jsx', 'tsx'),
                   _ATTR_START + r'className\s*=\s*' + _QUOTED),
    _regex_matcher('jsx-multiline', ('react', 'jsx', 'tsx'),
                   _ATTR_START + r'className\s*=\s*' + _QUOTED_MULTILINE),
    _regex_matcher('jsx-expression', ('react', 'jsx', 'tsx'),
                   _ATTR_START + r'className\s*=\s*\{\s*' + _QUOTED + r'\s*\}'),
    _regex_matcher('vue-bind', ('vue',),
                   r'v-bind:class\s*=\s*' + _QUOTED),
    _regex_matcher('vue-shorthand', ('vue',),
                   _ATTR_START + r':class\s*=\s*' + _QUOTED),
    _regex_matcher('angular-class', ('angular',),
                   r'\[class\]\s*=\s*' + _QUOTED),
    _regex_matcher('angular-ngclass', ('angular',),
                   r'\[ngClass\]\s*=\s*' + _QUOTED),
    _regex_matcher('svelte', ('svelte',),
                   _ATTR_START + r'class\s*=\s*' + _QUOTED),
    _template_literal_matcher(('javascript', 'typescript')),
)

# Most specific first. Component bindings outrank structural bindings, which
# outrank the generic attribute. Every syntax has its own rank.
SPECIFICITY_ORDER: Tuple[str, ...] = (
    'vue-bind',
    'vue-shorthand',
    'jsx-expression',
    'jsx-multiline',
    'jsx',
    'angular-ngclass',
    'angular-class',
    'svelte',
    'template-literal',
    'html-multiline',
    'html',
)
SPECIFICITY: Dict[str, int] = {syntax: rank for rank, syntax in enumerate(SPECIFICITY_ORDER)}

FRAMEWORKS_BY_EXTENSION: Dict[str, Tuple[str, ...]] = {
    'html': ('html', 'angular'),
    'htm': ('html', 'angular'),
    'php': ('php',),
    'erb': ('erb',),
    'jsx': ('react', 'jsx', 'html'),
    'tsx': ('react', 'jsx', 'tsx', 'html'),
    'js': ('javascript', 'html'),
    'ts': ('typescript', 'html', 'angular'),
    'vue': ('vue', 'html'),
    'svelte': ('svelte',),
}
DEFAULT_FRAMEWORKS: Tuple[str, ...] = ('html',)


def frameworks_for_file(path: str) -> Tuple[str, ...]:
    ext = PurePath(path).suffix.lower().lstrip('.')
    return FRAMEWORKS_BY_EXTENSION.get(ext, DEFAULT_FRAMEWORKS)


def matchers_for_file(path: str) -> List[PatternMatcher]:
    wanted = set(frameworks_for_file(path))
    return [m for m in PATTERN_MATCHERS if wanted.intersection(m.frameworks)]


def extract_matches(content: str, path: str) -> List[ClassAttributeMatch]:
    """Return non-overlapping class attribute occurrences, ordered by start."""
    candidates: List[Tuple[int, int, int, PatternMatcher]] = []
    for matcher in matchers_for_file(path):
        rank = SPECIFICITY[matcher.syntax]
        for start, end in matcher.recognize(content):
            candidates.append((rank, start, end, matcher))
    candidates.sort(key=lambda c: (c[0], c[1]))

    starts: List[int] = []
    ends: List[int] = []
    kept: List[ClassAttributeMatch] = []
    for _, start, end, matcher in candidates:
        i = bisect.bisect_left(starts, end)
        if i > 0 and ends[i - 1] > start:
            continue
        starts.insert(i, start)
        ends.insert(i, end)
        text = content[start:end]
        kept.append(ClassAttributeMatch(text, matcher.extract(text), start, end, matcher))

    kept.sort(key=lambda m: m.start)
    return kept


def apply_replacements(content: str,
                       replacements: Sequence[Tuple[ClassAttributeMatch, Sequence[str]]]) -> str:
    """Splice rebuilt occurrences into ``content``, last span first."""
    ordered = sorted(replacements, key=lambda r: r[0].start, reverse=True)
    parts: List[str] = []
    cursor = len(content)
    for match, tokens in ordered:
        if match.end > cursor:
            raise ValueError(f"overlapping replacement at {match.start}-{match.end}")
        parts.append(content[match.end:cursor])
        parts.append(match.matcher.reconstruct(tokens, match.text))
        cursor = match.start
    parts.append(content[:cursor])
    return ''.join(reversed(parts))
