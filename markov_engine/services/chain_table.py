"""
N-gram transition table.

Maps a context (tuple of `order` tokens) to a Counter over the token that
follows it (forward) or precedes it (backward). Training is purely additive.
"""
from __future__ import annotations

import sys
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Sequence, Tuple

from .errors import OrderTooLargeError
from .tokenizer import BOS, EOS

Context = Tuple[str, ...]


class Direction(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


def window_count(tokens: Sequence[str], order: int) -> int:
    """Number of context windows of size `order` in a token sequence."""
    return max(0, len(tokens) - order + 1)


def check_order(tokens: Sequence[str], order: int):
    if order >= len(tokens):
        raise OrderTooLargeError(order, len(tokens))


@dataclass
class TableDelta:
    """Counts from a range of windows, not yet merged into a table."""
    windows: int = 0
    transitions: Dict[Context, Counter] = field(default_factory=lambda: defaultdict(Counter))
    anchors: Counter = field(default_factory=Counter)


class ChainTable:
    """
    One direction of a Markov chain.

    `anchors` counts the contexts a walk in this direction may start from:
    contexts opening with BOS (forward) or closing with EOS (backward).
    """

    def __init__(self, order: int, direction: Direction = Direction.FORWARD):
        self.order = order
        self.direction = Direction(direction)
        self.transitions: Dict[Context, Counter] = defaultdict(Counter)
        self.anchors: Counter = Counter()
        # bumped on every change so derived views can be cached
        self.version = 0

    def train(self, tokens: Sequence[str]) -> int:
        """
        Count every window of the sequence.

        Returns:
            Number of windows applied
        """
        check_order(tokens, self.order)
        return self.train_range(tokens, 0, window_count(tokens, self.order))

    def train_range(self, tokens: Sequence[str], start: int, stop: int) -> int:
        """Apply windows start <= i < stop. Used for chunked training."""
        delta = self.count_range(tokens, start, stop)
        self.merge(delta)
        return delta.windows

    def count_range(self, tokens: Sequence[str], start: int, stop: int) -> "TableDelta":
        """
        Count windows start <= i < stop without touching the table.

        The result is committed with merge(), so several tables can be
        counted first and only updated once all of them succeeded.
        """
        check_order(tokens, self.order)
        stop = min(stop, window_count(tokens, self.order))
        order = self.order
        last = len(tokens)
        forward = self.direction is Direction.FORWARD
        delta = TableDelta(windows=max(0, stop - start))

        for i in range(start, stop):
            context = tuple(tokens[i:i + order])
            if forward:
                # sequence edge records a transition to the boundary token
                candidate = tokens[i + order] if i + order < last else EOS
                if context[0] == BOS:
                    delta.anchors[context] += 1
            else:
                candidate = tokens[i - 1] if i > 0 else BOS
                if context[-1] == EOS:
                    delta.anchors[context] += 1
            delta.transitions[context][candidate] += 1

        return delta

    def merge(self, delta: "TableDelta"):
        for context, dist in delta.transitions.items():
            self.transitions[context].update(dist)
        self.anchors.update(delta.anchors)
        self.version += 1

    def candidates(self, context: Context) -> List[Tuple[str, int]]:
        """Candidates in canonical (token-sorted) order; empty for a dead end."""
        dist = self.transitions.get(context)
        if not dist:
            return []
        return sorted(dist.items())

    def total(self, context: Context) -> int:
        dist = self.transitions.get(context)
        return sum(dist.values()) if dist else 0

    def contexts(self) -> List[Context]:
        return sorted(self.transitions.keys())

    def vocabulary(self) -> set:
        vocab = set()
        for context, dist in self.transitions.items():
            vocab.update(context)
            vocab.update(dist.keys())
        vocab.discard(BOS)
        vocab.discard(EOS)
        return vocab

    def clear(self):
        self.transitions.clear()
        self.anchors.clear()
        self.version += 1

    def __contains__(self, context: Context) -> bool:
        return context in self.transitions

    def __len__(self) -> int:
        return len(self.transitions)

    # --- persistence (JSON friendly) ---
    def to_dict(self) -> dict:
        return {
            "order": self.order,
            "direction": self.direction.value,
            "transitions": [
                [list(context), token, count]
                for context in self.contexts()
                for token, count in self.candidates(context)
            ],
            "anchors": [[list(context), count] for context, count in sorted(self.anchors.items())],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChainTable":
        table = cls(data["order"], Direction(data.get("direction", Direction.FORWARD.value)))
        for context, token, count in data.get("transitions", []):
            key = tuple(sys.intern(t) for t in context)
            table.transitions[key][sys.intern(token)] += int(count)
        for context, count in data.get("anchors", []):
            table.anchors[tuple(sys.intern(t) for t in context)] += int(count)
        table.version += 1
        return table
