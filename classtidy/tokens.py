"""
Token model for utility-class attribute values.

A token such as ``md:hover:w-4`` is split into its variant prefix
(``md:hover:``) and its base class name (``w-4``). Merge rules only ever
compare tokens whose variant prefixes are identical.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional


VARIANT_SEPARATOR = ':'
VALUE_SEPARATOR = '-'


@dataclass(frozen=True)
class ClassToken:
    variants: str
    base: str
    original: str
    position: int = 0


def parse_token(raw: str, position: int = 0) -> ClassToken:
    cut = raw.rfind(VARIANT_SEPARATOR)
    if cut == -1:
        return ClassToken('', raw, raw, position)
    return ClassToken(raw[:cut + 1], raw[cut + 1:], raw, position)


def split_tokens(value: str) -> List[str]:
    return value.split()


def parse_tokens(value: str) -> List[ClassToken]:
    return [parse_token(t, i) for i, t in enumerate(split_tokens(value))]


def group_by_variant(tokens: List[ClassToken]) -> Dict[str, List[ClassToken]]:
    # dict keeps first-seen variant order, which keeps rule output deterministic
    groups: Dict[str, List[ClassToken]] = {}
    for tok in tokens:
        groups.setdefault(tok.variants, []).append(tok)
    return groups


def extract_value(base: str) -> Optional[str]:
    """'w-4' -> '4'; 'flex' -> None."""
    cut = base.rfind(VALUE_SEPARATOR)
    if cut == -1:
        return None
    return base[cut + 1:]


def extract_prefix(base: str) -> str:
    return base.split(VALUE_SEPARATOR, 1)[0]


def have_same_value(a: str, b: str) -> bool:
    va = extract_value(a)
    vb = extract_value(b)
    return va is not None and va == vb


def with_prefix(tokens: List[ClassToken], prefix: str) -> List[ClassToken]:
    head = prefix + VALUE_SEPARATOR
    return [t for t in tokens if t.base.startswith(head)]
