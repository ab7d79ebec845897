"""
Random-walk text generation over trained chain tables.

Modes:
- FORWARD: walk the forward table from a start context until EOS, a dead end,
  or the length budget
- BACKWARD: walk the backward table from an end context until BOS, then reverse
- BIDIRECTIONAL: grow both ways around an anchor context

Sampling visits candidates in canonical (sorted) order and spends exactly one
integer draw per step, so output depends only on the seed, never on the order
counts were inserted in.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .chain_model import ChainModel
from .chain_table import ChainTable, Context
from .errors import DirectionDisabledError
from .tokenizer import BOS, EOS, is_boundary


class GenerationMode(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"
    BIDIRECTIONAL = "bidirectional"


class MarkovGenerator:
    """
    Samples token sequences from a ChainModel.

    Usage:
        gen = MarkovGenerator(np.random.default_rng(42))
        tokens = gen.generate(model, 10, mode=GenerationMode.BIDIRECTIONAL)
    """

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    def generate(
        self,
        model: ChainModel,
        length: int,
        seed: Optional[int] = None,
        mode: GenerationMode = GenerationMode.FORWARD,
        anchor: Optional[Sequence[str]] = None,
    ) -> List[str]:
        """
        Generate up to `length` tokens.

        Args:
            model: Trained chain model (never mutated)
            length: Maximum number of tokens to return
            seed: Reseed a private random source for this call; None reuses the shared one
            mode: Walk direction(s)
            anchor: Optional caller-supplied tokens to start from / grow around

        Returns:
            Token list, boundary markers excluded. Shorter than `length` when the
            chain ends (EOS/BOS sampled or dead end).
        """
        mode = GenerationMode(mode)
        if length <= 0:
            return []
        rng = np.random.default_rng(seed) if seed is not None else self.rng
        anchor = list(anchor) if anchor else None

        if mode is GenerationMode.FORWARD:
            table = self._require(model.forward, mode)
            return self._generate_forward(table, rng, length, anchor)
        if mode is GenerationMode.BACKWARD:
            table = self._require(model.backward, mode)
            return self._generate_backward(table, rng, length, anchor)

        forward = self._require(model.forward, mode)
        backward = self._require(model.backward, mode)
        return self._generate_bidirectional(model, forward, backward, rng, length, anchor)

    # --- modes ---
    def _generate_forward(self, table, rng, length, anchor) -> List[str]:
        if anchor:
            context = self._trailing_window(anchor, table.order)
            prefix = [t for t in anchor if not is_boundary(t)]
        else:
            if not table.anchors:
                return []
            context = self._weighted_choice(rng, sorted(table.anchors.items()))
            prefix = [t for t in context if not is_boundary(t)]

        if len(prefix) >= length:
            return prefix[:length]
        return prefix + self._extend(table, rng, context, length - len(prefix), forward=True)

    def _generate_backward(self, table, rng, length, anchor) -> List[str]:
        if anchor:
            context = self._leading_window(anchor, table.order)
            suffix = [t for t in anchor if not is_boundary(t)]
        else:
            if not table.anchors:
                return []
            context = self._weighted_choice(rng, sorted(table.anchors.items()))
            suffix = [t for t in context if not is_boundary(t)]

        if len(suffix) >= length:
            return suffix[-length:]
        head = self._extend(table, rng, context, length - len(suffix), forward=False)
        return head[::-1] + suffix

    def _generate_bidirectional(self, model, forward, backward, rng, length, anchor) -> List[str]:
        order = forward.order
        if anchor:
            lead = self._leading_window(anchor, order)
            trail = self._trailing_window(anchor, order)
            core = [t for t in anchor if not is_boundary(t)]
        else:
            picked = self._pick_anchor(model, rng)
            if picked is None:
                return []
            lead = trail = picked
            core = [t for t in picked if not is_boundary(t)]

        if len(core) >= length:
            return core[:length]

        remaining = length - len(core)
        head = self._extend(backward, rng, lead, remaining, forward=False)
        tail = self._extend(forward, rng, trail, remaining, forward=True)

        # split the budget; a side that ended early leaves its share to the other
        head_keep = min(len(head), max(remaining - len(tail), remaining // 2))
        tail_keep = min(len(tail), remaining - head_keep)
        return head[:head_keep][::-1] + core + tail[:tail_keep]

    # --- helpers ---
    def _extend(
        self,
        table: ChainTable,
        rng: np.random.Generator,
        context: Context,
        budget: int,
        forward: bool,
    ) -> List[str]:
        """
        Walk one direction from `context`.

        Returns tokens nearest-first: for a backward walk the caller reverses them.
        """
        stop = EOS if forward else BOS
        produced: List[str] = []
        while len(produced) < budget:
            candidates = table.candidates(context)
            if not candidates:
                # dead end
                break
            token = self._weighted_choice(rng, candidates)
            if token == stop:
                break
            produced.append(token)
            if forward:
                context = context[1:] + (token,)
            else:
                context = (token,) + context[:-1]
        return produced

    def _pick_anchor(self, model: ChainModel, rng: np.random.Generator) -> Optional[Context]:
        pool = model.anchor_pool()
        if not pool:
            return None
        return self._weighted_choice(rng, pool)

    @staticmethod
    def _weighted_choice(rng: np.random.Generator, items: Sequence[Tuple[object, int]]):
        """Pick one key with probability count / total using a single integer draw."""
        total = sum(count for _, count in items)
        draw = int(rng.integers(total))
        for key, count in items:
            draw -= count
            if draw < 0:
                return key
        return items[-1][0]

    @staticmethod
    def _trailing_window(tokens: Sequence[str], order: int) -> Context:
        window = tuple(tokens[-order:])
        return (BOS,) * (order - len(window)) + window

    @staticmethod
    def _leading_window(tokens: Sequence[str], order: int) -> Context:
        window = tuple(tokens[:order])
        return window + (EOS,) * (order - len(window))

    @staticmethod
    def _require(table: Optional[ChainTable], mode: GenerationMode) -> ChainTable:
        if table is None:
            raise DirectionDisabledError(f"{mode.value} generation needs a table this model was not built with")
        return table
