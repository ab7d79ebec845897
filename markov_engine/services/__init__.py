"""
Markov generator services: tokenizer, chain tables, model registry,
generator, and the MarkovSystem facade.
"""
from .chain_model import ChainModel, ModelRegistry, ModelStats
from .chain_table import ChainTable, Direction
from .errors import (
    DirectionDisabledError,
    EmptyInputError,
    MarkovError,
    NotReadyError,
    OrderMismatchError,
    OrderTooLargeError,
    UnknownModelError,
)
from .generator import GenerationMode, MarkovGenerator
from .markov_system import JobStatus, MarkovSystem, SystemState, TrainingJob
from .tokenizer import BOS, EOS, detokenize, tokenize

__all__ = [
    "BOS",
    "EOS",
    "ChainModel",
    "ChainTable",
    "Direction",
    "DirectionDisabledError",
    "EmptyInputError",
    "GenerationMode",
    "JobStatus",
    "MarkovError",
    "MarkovGenerator",
    "MarkovSystem",
    "ModelRegistry",
    "ModelStats",
    "NotReadyError",
    "OrderMismatchError",
    "OrderTooLargeError",
    "SystemState",
    "TrainingJob",
    "UnknownModelError",
    "detokenize",
    "tokenize",
]
