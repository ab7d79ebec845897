"""
Trained Markov chain models and the bounded, LRU-evicting registry that holds them.
"""
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .chain_table import ChainTable, Context, Direction
from .errors import OrderMismatchError, UnknownModelError
from .tokenizer import is_boundary

logger = logging.getLogger(__name__)


@dataclass
class ModelStats:
    """Statistics for a trained model."""
    model_id: str
    order: int
    trained_tokens: int = 0
    forward_contexts: int = 0
    backward_contexts: int = 0
    vocab_size: int = 0


@dataclass
class ChainModel:
    """
    One trained unit: forward and/or backward tables built from the same
    corpus at the same order.
    """
    model_id: str
    order: int
    forward: Optional[ChainTable] = None
    backward: Optional[ChainTable] = None
    trained_tokens: int = 0
    last_access: int = 0
    created_seq: int = 0
    _anchor_cache: Optional[tuple] = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def create(
        cls,
        model_id: str,
        order: int,
        enable_forward: bool = True,
        enable_backward: bool = True,
        created_seq: int = 0,
    ) -> "ChainModel":
        if order < 1:
            raise ValueError(f"order must be >= 1, got {order}")
        if not (enable_forward or enable_backward):
            raise ValueError("a model needs at least one direction")
        return cls(
            model_id=model_id,
            order=order,
            forward=ChainTable(order, Direction.FORWARD) if enable_forward else None,
            backward=ChainTable(order, Direction.BACKWARD) if enable_backward else None,
            created_seq=created_seq,
            last_access=created_seq,
        )

    @property
    def tables(self) -> List[ChainTable]:
        return [t for t in (self.forward, self.backward) if t is not None]

    def reset(self):
        """Drop all learned counts, keeping order and enabled directions."""
        for table in self.tables:
            table.clear()
        self.trained_tokens = 0

    def stats(self) -> ModelStats:
        vocab = set()
        for table in self.tables:
            vocab |= table.vocabulary()
        return ModelStats(
            model_id=self.model_id,
            order=self.order,
            trained_tokens=self.trained_tokens,
            forward_contexts=len(self.forward) if self.forward is not None else 0,
            backward_contexts=len(self.backward) if self.backward is not None else 0,
            vocab_size=len(vocab),
        )

    def to_dict(self) -> dict:
        return {
            "model_id": self.model_id,
            "order": self.order,
            "trained_tokens": self.trained_tokens,
            "forward": self.forward.to_dict() if self.forward is not None else None,
            "backward": self.backward.to_dict() if self.backward is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChainModel":
        """
        Rebuild a model exported by to_dict().

        Raises:
            ValueError: no tables, a table of another order, or a table in the wrong slot
        """
        order = int(data["order"])
        forward = ChainTable.from_dict(data["forward"]) if data.get("forward") else None
        backward = ChainTable.from_dict(data["backward"]) if data.get("backward") else None
        if forward is None and backward is None:
            raise ValueError("a model needs at least one direction")
        for table, direction in ((forward, Direction.FORWARD), (backward, Direction.BACKWARD)):
            if table is None:
                continue
            if table.order != order:
                raise ValueError(f"{direction.value} table has order {table.order}, model has {order}")
            if table.direction is not direction:
                raise ValueError(f"{direction.value} slot holds a {table.direction.value} table")
        return cls(
            model_id=data["model_id"],
            order=order,
            forward=forward,
            backward=backward,
            trained_tokens=int(data.get("trained_tokens", 0)),
        )

    def anchor_pool(self) -> List[Tuple[Context, int]]:
        """
        Contexts present in both tables, weighted by forward total, for
        picking a bidirectional anchor. Boundary-free contexts are preferred.

        Rebuilt only when either table changed since the last call.
        """
        if self.forward is None or self.backward is None:
            return []
        key = (id(self.forward), self.forward.version, id(self.backward), self.backward.version)
        if self._anchor_cache is None or self._anchor_cache[0] != key:
            shared = [c for c in self.forward.contexts() if c in self.backward]
            inner = [c for c in shared if not any(is_boundary(t) for t in c)]
            pool = [(c, self.forward.total(c)) for c in (inner or shared)]
            self._anchor_cache = (key, pool)
        return self._anchor_cache[1]


class ModelRegistry:
    """
    Holds at most `memory_size` resident models.

    Recency is an explicit monotonically increasing counter; eviction removes
    the model with the oldest (last_access, created_seq). Eviction only runs
    when evict_if_needed() is called, which the facade does at operation
    boundaries.
    """

    def __init__(self, memory_size: int = 4):
        if memory_size < 1:
            raise ValueError(f"memory_size must be >= 1, got {memory_size}")
        self.memory_size = memory_size
        self.models: Dict[str, ChainModel] = {}
        self._clock = itertools.count(1)

    def get_or_create(
        self,
        model_id: str,
        order: int,
        enable_forward: bool = True,
        enable_backward: bool = True,
        reset: bool = False,
    ) -> ChainModel:
        """
        Return the model for `model_id`, creating an empty one if needed.

        Raises:
            OrderMismatchError: existing model has another order and reset is False
        """
        model = self.models.get(model_id)
        if model is not None:
            if model.order == order:
                if reset:
                    model.reset()
                return model
            if not reset:
                raise OrderMismatchError(model_id, model.order, order)
            logger.info(f"[Markov] Rebuilding '{model_id}' at order {order} (was {model.order})")
            del self.models[model_id]

        model = ChainModel.create(
            model_id,
            order,
            enable_forward=enable_forward,
            enable_backward=enable_backward,
            created_seq=next(self._clock),
        )
        self.models[model_id] = model
        return model

    def get(self, model_id: str) -> ChainModel:
        model = self.models.get(model_id)
        if model is None:
            raise UnknownModelError(model_id)
        return model

    def touch(self, model_id: str) -> ChainModel:
        model = self.get(model_id)
        model.last_access = next(self._clock)
        return model

    def evict_if_needed(self, protect: Iterable[str] = ()) -> List[str]:
        """
        Evict least-recently-used models until the bound holds.

        Returns:
            Evicted model ids, oldest first
        """
        protected = set(protect)
        evicted = []
        while len(self.models) > self.memory_size:
            candidates = [m for m in self.models.values() if m.model_id not in protected]
            if not candidates:
                break
            victim = min(candidates, key=lambda m: (m.last_access, m.created_seq))
            del self.models[victim.model_id]
            evicted.append(victim.model_id)
            logger.info(f"[Markov] Evicted model '{victim.model_id}' (memory_size={self.memory_size})")
        return evicted

    def reset(self, model_id: str) -> ChainModel:
        model = self.get(model_id)
        model.reset()
        return model

    def put(self, model: ChainModel) -> ChainModel:
        """Insert an externally built model (e.g. imported), replacing any same id."""
        model.created_seq = next(self._clock)
        model.last_access = model.created_seq
        self.models.pop(model.model_id, None)
        self.models[model.model_id] = model
        return model

    def clear(self):
        self.models.clear()

    def list_ids(self) -> List[str]:
        return list(self.models.keys())

    def __contains__(self, model_id: str) -> bool:
        return model_id in self.models

    def __len__(self) -> int:
        return len(self.models)
