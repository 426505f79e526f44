"""
Safe token processor.

Intents (remove / replace / add) are recorded against a frozen snapshot of
an attribute's tokens and materialised in a single forward pass. Nothing is
spliced out of a list while it is being walked, so one operation can never
shift the position another operation refers to.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple


REMOVE = 'remove'
REPLACE = 'replace'
ADD = 'add'


@dataclass(frozen=True)
class Intent:
    kind: str
    position: int
    original: str
    replacement: Optional[str] = None


@dataclass
class ExecuteResult:
    tokens: List[str]
    changed: bool
    operations: List[Tuple[str, Optional[str], Optional[str]]] = field(default_factory=list)


class SafeTokenProcessor:

    def __init__(self, tokens: Iterable[str]):
        self._snapshot: Tuple[str, ...] = tuple(tokens)
        self._intents: List[Intent] = []
        self._additions: List[str] = []

    @property
    def snapshot(self) -> Tuple[str, ...]:
        return self._snapshot

    def _locate(self, text: str, position: Optional[int]) -> int:
        if position is not None:
            if 0 <= position < len(self._snapshot) and self._snapshot[position] == text:
                return position
            return -1
        try:
            return self._snapshot.index(text)
        except ValueError:
            return -1

    def mark_removal(self, text: str, position: Optional[int] = None) -> bool:
        idx = self._locate(text, position)
        if idx == -1:
            return False
        self._intents.append(Intent(REMOVE, idx, text))
        return True

    def mark_removals(self, texts: Iterable[str]) -> int:
        return sum(1 for t in texts if self.mark_removal(t))

    def mark_replacement(self, text: str, replacement: str, position: Optional[int] = None) -> bool:
        idx = self._locate(text, position)
        if idx == -1:
            return False
        self._intents.append(Intent(REPLACE, idx, text, replacement))
        return True

    def add_token(self, text: str) -> None:
        self._additions.append(text)

    def add_tokens(self, texts: Iterable[str]) -> None:
        self._additions.extend(texts)

    def has_intents(self) -> bool:
        return bool(self._intents or self._additions)

    def execute(self) -> ExecuteResult:
        # first recorded intent for a position governs it
        first: Dict[int, Intent] = {}
        for intent in self._intents:
            first.setdefault(intent.position, intent)

        out: List[str] = []
        ops: List[Tuple[str, Optional[str], Optional[str]]] = []
        for i, tok in enumerate(self._snapshot):
            intent = first.get(i)
            if intent is None:
                out.append(tok)
            elif intent.kind == REMOVE:
                ops.append((REMOVE, tok, None))
            else:
                if intent.replacement:
                    out.append(intent.replacement)
                ops.append((REPLACE, tok, intent.replacement))
        for text in self._additions:
            out.append(text)
            ops.append((ADD, None, text))
        return ExecuteResult(out, self.has_intents(), ops)

    def preview(self) -> Dict[str, list]:
        return {
            'original': list(self._snapshot),
            'intents': list(self._intents),
            'additions': list(self._additions),
        }

    def reset(self) -> None:
        self._intents = []
        self._additions = []


def replace_pair(processor: SafeTokenProcessor, first: str, second: str, merged: str,
                 first_pos: Optional[int] = None, second_pos: Optional[int] = None) -> bool:
    """Remove both tokens and append ``merged``; all or nothing."""
    ok1 = processor.mark_removal(first, first_pos)
    ok2 = processor.mark_removal(second, second_pos)
    if ok1 and ok2:
        processor.add_token(merged)
        return True
    if ok1 or ok2:
        processor.reset()
    return False


def replace_single(processor: SafeTokenProcessor, original: str, replacement: str) -> bool:
    return processor.mark_replacement(original, replacement)


def validate_tokens_exist(tokens: Iterable[str], required: Iterable[str]) -> bool:
    have = set(tokens)
    return all(r in have for r in required)


def remove_duplicates(tokens: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for t in tokens:
        if t in seen:
            continue
        seen.add(t)
        out.append(t)
    return out


def merge_tokens(a: Iterable[str], b: Iterable[str]) -> List[str]:
    return remove_duplicates([*a, *b])
