"""
Merge rules.

Every rule has the same shape, ``rule(content, path) -> RuleResult``. A rule
never raises for bad input: failures come back in ``RuleResult.error`` and
the content is returned untouched, leaving the caller to decide whether the
run goes on.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .errors import ConfigurationError, ConversionError, classify_content_error
from .patterns import apply_replacements, extract_matches
from .processor import SafeTokenProcessor, replace_pair
from .tokens import ClassToken, extract_value, group_by_variant, have_same_value, parse_tokens, with_prefix

logger = logging.getLogger(__name__)

COLOR_ROLES = ('bg', 'text', 'border', 'ring', 'divide', 'placeholder')
LAYOUT_TOKENS = ('flex', 'grid')


@dataclass(frozen=True)
class RuleResult:
    new_content: str
    changed: bool
    error: Optional[ConversionError] = None
    applied: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None


RuleFn = Callable[[str, str], RuleResult]
# decides merges for one attribute; returns True when it recorded intents
Decider = Callable[[List[ClassToken], SafeTokenProcessor], bool]


def _rewrite(content: str, path: str, decide: Decider) -> RuleResult:
    try:
        replacements = []
        for match in extract_matches(content, path):
            tokens = parse_tokens(match.value)
            processor = SafeTokenProcessor(t.original for t in tokens)
            if not decide(tokens, processor):
                continue
            result = processor.execute()
            if result.changed:
                replacements.append((match, result.tokens))
        if not replacements:
            return RuleResult(content, False)
        return RuleResult(apply_replacements(content, replacements), True)
    except ConversionError as err:
        if not err.recoverable:
            raise
        return RuleResult(content, False, err)
    except Exception as exc:
        err = classify_content_error(exc, path)
        logger.debug("rule failed on %s: %r", path, exc)
        return RuleResult(content, False, err)


def _merge_pairs(group: List[ClassToken], variants: str, processor: SafeTokenProcessor,
                 consumed: Set[int], first: str, second: str, merged: str) -> bool:
    # a token joins at most one merge; first compatible partner in source order wins
    changed = False
    partners = with_prefix(group, second)
    for a in with_prefix(group, first):
        for b in partners:
            if a.position in consumed:
                break
            if b.position in consumed or not have_same_value(a.base, b.base):
                continue
            value = extract_value(a.base)
            new = f"{variants}{merged}-{value}"
            if replace_pair(processor, a.original, b.original, new, a.position, b.position):
                consumed.update((a.position, b.position))
                changed = True
    return changed


def _pair_decider(first: str, second: str, merged: str) -> Decider:
    def decide(tokens: List[ClassToken], processor: SafeTokenProcessor) -> bool:
        consumed: Set[int] = set()
        changed = False
        for variants, group in group_by_variant(tokens).items():
            if _merge_pairs(group, variants, processor, consumed, first, second, merged):
                changed = True
        return changed
    return decide


def size_merge(content: str, path: str = 'unknown') -> RuleResult:
    """w-N h-N -> size-N"""
    return _rewrite(content, path, _pair_decider('w', 'h', 'size'))


def make_axis_merge(prefix: str) -> RuleFn:
    """<p>x-N <p>y-N -> <p>-N, e.g. mx-4 my-4 -> m-4."""
    decide = _pair_decider(f"{prefix}x", f"{prefix}y", prefix)

    def axis_merge(content: str, path: str = 'unknown') -> RuleResult:
        return _rewrite(content, path, decide)

    axis_merge.__name__ = f"{prefix}_axis_merge"
    return axis_merge


margin_merge = make_axis_merge('m')
padding_merge = make_axis_merge('p')


def _color_opacity_decide(tokens: List[ClassToken], processor: SafeTokenProcessor) -> bool:
    consumed: Set[int] = set()
    changed = False
    for variants, group in group_by_variant(tokens).items():
        for role in COLOR_ROLES:
            opacity_prefix = f"{role}-opacity-"
            colors = [t for t in with_prefix(group, role)
                      if not t.base.startswith(opacity_prefix) and '/' not in t.base]
            opacities = [t for t in group if t.base.startswith(opacity_prefix)]
            for a in colors:
                for b in opacities:
                    if a.position in consumed:
                        break
                    if b.position in consumed:
                        continue
                    value = extract_value(b.base)
                    if not value:
                        continue
                    new = f"{variants}{a.base}/{value}"
                    if replace_pair(processor, a.original, b.original, new, a.position, b.position):
                        consumed.update((a.position, b.position))
                        changed = True
    return changed


def color_opacity_merge(content: str, path: str = 'unknown') -> RuleResult:
    """bg-red-500 bg-opacity-50 -> bg-red-500/50"""
    return _rewrite(content, path, _color_opacity_decide)


def has_layout_token(tokens: Iterable[ClassToken]) -> bool:
    for t in tokens:
        if t.base in LAYOUT_TOKENS or t.base.startswith(('flex-', 'grid-')):
            return True
    return False


_space_decide = _pair_decider('space-x', 'space-y', 'gap')


def _gap_decide(tokens: List[ClassToken], processor: SafeTokenProcessor) -> bool:
    # gap only means something on a flex or grid container
    if not has_layout_token(tokens):
        return False
    return _space_decide(tokens, processor)


def gap_merge(content: str, path: str = 'unknown') -> RuleResult:
    """space-x-N space-y-N -> gap-N, only alongside flex/grid"""
    return _rewrite(content, path, _gap_decide)


RULES: Dict[str, RuleFn] = {
    'size': size_merge,
    'margin': margin_merge,
    'padding': padding_merge,
    'color-opacity': color_opacity_merge,
    'gap': gap_merge,
}


def resolve_rules(names: Sequence[str], table: Optional[Mapping[str, RuleFn]] = None) -> List[Tuple[str, RuleFn]]:
    table = RULES if table is None else table
    if not names:
        raise ConfigurationError('No rules selected',
                                 suggestion=f"Choose from: {', '.join(table)}")
    unknown = [n for n in names if n not in table]
    if unknown:
        raise ConfigurationError(f"Unknown rule(s): {', '.join(unknown)}",
                                 suggestion=f"Choose from: {', '.join(table)}")
    return [(n, table[n]) for n in names]


def apply_rules(content: str, path: str, names: Sequence[str],
                table: Optional[Mapping[str, RuleFn]] = None) -> RuleResult:
    """Run rules in order, each on the previous one's output.

    On the first failing rule the original content comes back with the error,
    so a file is never left half transformed.
    """
    current = content
    applied: List[str] = []
    for name, rule in resolve_rules(names, table):
        try:
            result = rule(current, path)
        except ConversionError as err:
            if not err.recoverable:
                raise
            result = RuleResult(current, False, err)
        except Exception as exc:
            result = RuleResult(current, False, classify_content_error(exc, path))
        if result.error is not None:
            return RuleResult(content, False, result.error, tuple(applied))
        if result.changed:
            applied.append(name)
            current = result.new_content
    return RuleResult(current, bool(applied), None, tuple(applied))
