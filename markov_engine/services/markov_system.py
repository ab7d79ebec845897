"""
MarkovSystem facade.

Owns the model registry and the single seeded random source, exposes
train / generate / reset / list to the host, and amortizes large training
jobs across frame ticks. Single-threaded: the host drives begin_frame(),
update() and end_frame(); nothing runs in the background.
"""
from __future__ import annotations

import itertools
import logging
from collections import OrderedDict, deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, List, Optional, Union

import numpy as np
from pydantic import ValidationError

from markov_engine.config import MarkovConfig
from markov_engine.utils.logger import log_error, log_info, log_warning

from .chain_model import ChainModel, ModelRegistry, ModelStats
from .chain_table import check_order, window_count
from .errors import MarkovError, NotReadyError
from .generator import GenerationMode, MarkovGenerator
from .tokenizer import detokenize, tokenize

logger = logging.getLogger(__name__)


class SystemState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class JobStatus(str, Enum):
    PENDING = "pending"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class TrainingJob:
    """A training call, applied in corpus order one chunk per tick."""
    job_id: int
    model_id: str
    tokens: List[str]
    total_windows: int
    applied_windows: int = 0
    status: JobStatus = JobStatus.PENDING
    error: Optional[str] = None

    @property
    def progress(self) -> float:
        if self.total_windows == 0:
            return 1.0
        return self.applied_windows / self.total_windows

    @property
    def done(self) -> bool:
        return self.status is not JobStatus.PENDING

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "model_id": self.model_id,
            "status": self.status.value,
            "applied_windows": self.applied_windows,
            "total_windows": self.total_windows,
            "progress": round(self.progress, 4),
            "error": self.error,
        }


class MarkovSystem:
    """
    Markov chain text generator with a frame-driven lifecycle.

    Usage:
        system = MarkovSystem({"markov_order": 2, "seed_number": 42})
        system.startup()
        system.train("greeting", "hello there friend")
        system.run_frame()  # host loop; advances pending training
        text = system.generate("greeting", 8)
        system.shutdown()
    """

    def __init__(self, config: Union[MarkovConfig, dict, None] = None, job_history: int = 256):
        self._raw_config = config
        self.config: Optional[MarkovConfig] = None
        self.state = SystemState.UNINITIALIZED
        self.seed: Optional[int] = None
        self.registry: Optional[ModelRegistry] = None
        self.generator: Optional[MarkovGenerator] = None

        # pending jobs plus the most recent `job_history` finished ones
        self.job_history = job_history
        self._jobs: "OrderedDict[int, TrainingJob]" = OrderedDict()
        self._queue: Deque[TrainingJob] = deque()
        self._job_ids = itertools.count(1)
        self._tick_budget = 0

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def startup(self, config: Union[MarkovConfig, dict, None] = None):
        """
        Validate config, seed the random source, and become Ready.

        Raises:
            pydantic.ValidationError: order < 1, memory_size < 1,
                response_length < 0, or both directions disabled
        """
        if self.state is not SystemState.UNINITIALIZED:
            raise NotReadyError(f"startup() called in state {self.state.value}")

        raw = config if config is not None else self._raw_config
        if isinstance(raw, MarkovConfig):
            raw = raw.model_dump()
        try:
            self.config = MarkovConfig(**(raw or {}))
        except ValidationError as e:
            log_error("[Markov] Invalid configuration", errors=e.error_count())
            raise

        if self.config.seed_number != -1:
            self.seed = self.config.seed_number
        else:
            self.seed = int(np.random.SeedSequence().entropy)

        self.generator = MarkovGenerator(np.random.default_rng(self.seed))
        self.registry = ModelRegistry(self.config.memory_size)
        self._tick_budget = self.config.train_budget
        self.state = SystemState.READY

        log_info(
            "[Markov] System ready",
            seed=self.seed,
            order=self.config.markov_order,
            response_length=self.config.response_length,
            memory_size=self.config.memory_size,
            forward=self.config.enable_forward,
            backward=self.config.enable_backward,
        )

    def shutdown(self):
        if self.state is not SystemState.READY:
            raise NotReadyError(f"shutdown() called in state {self.state.value}")
        self.state = SystemState.SHUTTING_DOWN
        for job in self._queue:
            job.status = JobStatus.CANCELLED
        self._queue.clear()
        self._jobs.clear()
        self.registry.clear()
        self.state = SystemState.STOPPED
        log_info("[Markov] System stopped")

    @property
    def ready(self) -> bool:
        return self.state is SystemState.READY

    def _require_ready(self):
        if self.state is not SystemState.READY:
            raise NotReadyError(f"Markov system is {self.state.value}, not ready")

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------
    def train(
        self,
        model_id: str,
        text: str,
        order: Optional[int] = None,
        reset: bool = False,
    ) -> TrainingJob:
        """
        Train (or continue training) a model on `text`.

        Small corpora are committed immediately; anything larger than one
        tick's budget is queued and applied by update().

        Raises:
            EmptyInputError, OrderTooLargeError, OrderMismatchError, NotReadyError
        """
        self._require_ready()
        order = order if order is not None else self.config.markov_order
        if order < 1:
            raise ValueError(f"order must be >= 1, got {order}")

        tokens = tokenize(text)
        check_order(tokens, order)

        existed = model_id in self.registry
        model = self.registry.get_or_create(
            model_id,
            order,
            enable_forward=self.config.enable_forward,
            enable_backward=self.config.enable_backward,
            reset=reset,
        )
        if reset and existed:
            self._cancel_jobs({model_id}, "model reset")
        self.registry.touch(model_id)
        self._cancel_jobs(self.registry.evict_if_needed(protect=[model_id]), "model evicted")

        job = TrainingJob(
            job_id=next(self._job_ids),
            model_id=model_id,
            tokens=tokens,
            total_windows=window_count(tokens, order),
        )
        self._jobs[job.job_id] = job

        if job.total_windows <= self.config.train_budget and not self._has_pending(model_id):
            try:
                self._apply_chunk(job, model, job.total_windows)
            except Exception as e:
                self._fail_job(job, e)
                raise
        else:
            self._queue.append(job)
            logger.info(
                f"[Markov] Queued training for '{model_id}': {job.total_windows} windows "
                f"({self.config.train_budget} per tick)"
            )
        self._trim_jobs()
        return job

    def generate_tokens(
        self,
        model_id: str,
        length: Optional[int] = None,
        mode: Optional[GenerationMode] = None,
        anchor: Optional[str] = None,
        seed: Optional[int] = None,
    ) -> List[str]:
        """Generate a token sequence from a resident model."""
        self._require_ready()
        self._cancel_jobs(self.registry.evict_if_needed(), "model evicted")
        model = self.registry.touch(model_id)

        length = self.config.response_length if length is None else length
        mode = GenerationMode(mode) if mode is not None else self._default_mode(model)
        anchor_tokens = tokenize(anchor, boundaries=False) if anchor else None
        return self.generator.generate(model, length, seed=seed, mode=mode, anchor=anchor_tokens)

    def generate(
        self,
        model_id: str,
        length: Optional[int] = None,
        mode: Optional[GenerationMode] = None,
        anchor: Optional[str] = None,
        seed: Optional[int] = None,
    ) -> str:
        """
        Generate readable text from a resident model.

        Raises:
            UnknownModelError, DirectionDisabledError, NotReadyError
        """
        return detokenize(self.generate_tokens(model_id, length, mode, anchor, seed))

    def reset(self, model_id: str):
        """Drop a model's learned counts; the model stays resident."""
        self._require_ready()
        self.registry.reset(model_id)
        self._cancel_jobs({model_id}, "model reset")
        logger.info(f"[Markov] Reset model '{model_id}'")

    def list_models(self) -> List[str]:
        self._require_ready()
        return self.registry.list_ids()

    def model_stats(self, model_id: str) -> ModelStats:
        self._require_ready()
        return self.registry.get(model_id).stats()

    def job(self, job_id: int) -> Optional[TrainingJob]:
        """Look up a pending or recently finished job; older finished jobs are forgotten."""
        self._require_ready()
        return self._jobs.get(job_id)

    def pending_jobs(self) -> List[TrainingJob]:
        self._require_ready()
        return list(self._queue)

    def export_model(self, model_id: str) -> dict:
        self._require_ready()
        return self.registry.get(model_id).to_dict()

    def import_model(self, data: dict) -> str:
        """Load a model produced by export_model(), replacing any model with the same id."""
        self._require_ready()
        model = ChainModel.from_dict(data)
        self._cancel_jobs({model.model_id}, "model replaced")
        self.registry.put(model)
        self._cancel_jobs(self.registry.evict_if_needed(protect=[model.model_id]), "model evicted")
        return model.model_id

    # ------------------------------------------------------------------
    # frame hooks (never raise)
    # ------------------------------------------------------------------
    def begin_frame(self):
        if self.state is SystemState.READY:
            self._tick_budget = self.config.train_budget

    def update(self) -> int:
        """
        Apply queued training chunks up to this tick's budget.

        Returns:
            Number of windows applied this call
        """
        if self.state is not SystemState.READY:
            return 0

        applied = 0
        while self._queue and self._tick_budget > 0:
            job = self._queue[0]
            try:
                model = self.registry.get(job.model_id)
                count = min(self._tick_budget, job.total_windows - job.applied_windows)
                self._apply_chunk(job, model, count)
            except Exception as e:
                self._fail_job(job, e)
                self._queue.popleft()
                continue

            self._tick_budget -= count
            applied += count
            if job.done:
                self._queue.popleft()
        self._trim_jobs()
        return applied

    def end_frame(self):
        pass

    def run_frame(self) -> int:
        self.begin_frame()
        applied = self.update()
        self.end_frame()
        return applied

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------
    def _apply_chunk(self, job: TrainingJob, model: ChainModel, count: int):
        """
        Commit `count` windows of the job to every table of the model.

        All tables are counted before any is updated, so a chunk that raises
        leaves the model exactly as it was.
        """
        start = job.applied_windows
        stop = start + count
        deltas = [(table, table.count_range(job.tokens, start, stop)) for table in model.tables]
        for table, delta in deltas:
            table.merge(delta)
        job.applied_windows = stop
        if stop >= job.total_windows:
            # each corpus token counted once, when its job completes
            model.trained_tokens += len(job.tokens)
            job.status = JobStatus.COMPLETE
            job.tokens = []
            logger.debug(f"[Markov] Training job {job.job_id} complete for '{job.model_id}'")

    def _fail_job(self, job: TrainingJob, error: Exception):
        job.status = JobStatus.FAILED
        job.error = str(error)
        job.tokens = []
        log_error(f"[ERR] Training chunk failed: {error}", exc_info=True,
                  job_id=job.job_id, model_id=job.model_id)

    def _trim_jobs(self):
        """Forget the oldest finished jobs beyond `job_history`."""
        finished = [job_id for job_id, job in self._jobs.items() if job.done]
        for job_id in finished[:max(0, len(finished) - self.job_history)]:
            del self._jobs[job_id]

    def _has_pending(self, model_id: str) -> bool:
        return any(j.model_id == model_id for j in self._queue)

    def _cancel_jobs(self, model_ids, reason: str):
        model_ids = set(model_ids)
        if not model_ids:
            return
        kept: Deque[TrainingJob] = deque()
        for job in self._queue:
            if job.model_id in model_ids:
                job.status = JobStatus.CANCELLED
                job.error = reason
                job.tokens = []
                log_warning("[Markov] Training job cancelled", job_id=job.job_id,
                            model_id=job.model_id, reason=reason)
            else:
                kept.append(job)
        self._queue = kept
        self._trim_jobs()

    def _default_mode(self, model: ChainModel) -> GenerationMode:
        if model.forward is not None and model.backward is not None:
            return GenerationMode.BIDIRECTIONAL
        if model.forward is not None:
            return GenerationMode.FORWARD
        return GenerationMode.BACKWARD


__all__ = [
    "MarkovSystem",
    "SystemState",
    "JobStatus",
    "TrainingJob",
    "MarkovError",
]
