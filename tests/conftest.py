"""
Shared pytest fixtures for Markov engine tests.
"""
from typing import List

import pytest

from markov_engine.services.chain_model import ChainModel
from markov_engine.services.markov_system import MarkovSystem
from markov_engine.services.tokenizer import tokenize


GREETING_TEXT = "hello there friend hello there world"
GREETING_VOCAB = {"hello", "there", "friend", "world"}


@pytest.fixture
def greeting_text() -> str:
    return GREETING_TEXT


@pytest.fixture
def sample_corpus() -> List[str]:
    """Sample text corpus for multi-sentence training."""
    return [
        "Hello friend, how are you today?",
        "The universe is full of amazing wonders.",
        "I love exploring new planets and stars.",
        "Would you like to play a game together?",
        "The stars are beautiful tonight.",
        "Friends always support each other.",
    ]


@pytest.fixture
def long_text(sample_corpus) -> str:
    return " ".join(sample_corpus)


def build_model(text: str, order: int = 1, forward: bool = True, backward: bool = True,
                model_id: str = "test") -> ChainModel:
    """Helper to train a standalone model on one corpus."""
    model = ChainModel.create(model_id, order, enable_forward=forward, enable_backward=backward)
    tokens = tokenize(text)
    for table in model.tables:
        table.train(tokens)
    model.trained_tokens = len(tokens)
    return model


@pytest.fixture
def greeting_model() -> ChainModel:
    return build_model(GREETING_TEXT, order=1)


@pytest.fixture
def make_system():
    """Factory for started MarkovSystems; shuts them down after the test."""
    systems = []

    def _make(**config) -> MarkovSystem:
        config.setdefault("seed_number", 42)
        system = MarkovSystem(config)
        system.startup()
        systems.append(system)
        return system

    yield _make

    for system in systems:
        if system.ready:
            system.shutdown()
