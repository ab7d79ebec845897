"""
Tests for the MarkovGenerator random walks.
"""
from collections import Counter

import numpy as np
import pytest

from markov_engine.services.chain_model import ChainModel
from markov_engine.services.chain_table import ChainTable
from markov_engine.services.errors import DirectionDisabledError
from markov_engine.services.generator import GenerationMode, MarkovGenerator
from markov_engine.services.tokenizer import BOS

from conftest import GREETING_VOCAB, build_model

ALL_MODES = list(GenerationMode)


def assert_greeting_chain(tokens):
    """hello is only ever followed by there in the greeting corpus."""
    for current, nxt in zip(tokens, tokens[1:]):
        if current == "hello":
            assert nxt == "there"


class TestForward:
    """Test suite for forward generation."""

    def test_greeting_scenario(self, greeting_model):
        """Test seed 42 gives a fixed sequence from the observed vocabulary."""
        first = MarkovGenerator(np.random.default_rng(42)).generate(greeting_model, 5)
        second = MarkovGenerator(np.random.default_rng(42)).generate(greeting_model, 5)

        assert first == second
        assert 3 <= len(first) <= 5
        assert set(first) <= GREETING_VOCAB
        # BOS is only followed by hello, and hello only by there
        assert first[:2] == ["hello", "there"]
        assert_greeting_chain(first)

    def test_respects_length(self, long_text):
        """Test output never exceeds the requested length."""
        model = build_model(long_text, order=1)
        gen = MarkovGenerator(np.random.default_rng(0))

        for length in range(0, 8):
            assert len(gen.generate(model, length)) <= length

    def test_zero_length(self, greeting_model):
        """Test zero length returns nothing."""
        assert MarkovGenerator().generate(greeting_model, 0) == []

    def test_with_anchor(self, greeting_model):
        """Test a caller anchor starts the walk."""
        tokens = MarkovGenerator(np.random.default_rng(1)).generate(
            greeting_model, 4, anchor=["friend"]
        )

        assert tokens[:3] == ["friend", "hello", "there"]

    def test_unseen_anchor_is_dead_end(self, greeting_model):
        """Test an anchor with no transitions returns just the anchor."""
        tokens = MarkovGenerator().generate(greeting_model, 5, anchor=["nowhere"])

        assert tokens == ["nowhere"]

    def test_empty_model(self):
        """Test an untrained model generates nothing."""
        model = ChainModel.create("empty", 1)

        for mode in ALL_MODES:
            assert MarkovGenerator().generate(model, 5, mode=mode) == []


class TestDeadEnd:
    """Generation stops where the chain stops, without errors."""

    @pytest.mark.parametrize("mode", ALL_MODES)
    def test_three_word_sentence(self, mode):
        """Test order 2 on one short sentence reproduces it and stops."""
        model = build_model("the quick fox", order=2)

        for seed in range(10):
            tokens = MarkovGenerator().generate(model, 10, seed=seed, mode=mode)
            assert tokens == ["the", "quick", "fox"]

    def test_truncates(self):
        """Test a long chain is cut at the length budget."""
        model = build_model("the quick fox", order=2)

        assert MarkovGenerator().generate(model, 2) == ["the", "quick"]
        assert MarkovGenerator().generate(model, 2, mode=GenerationMode.BACKWARD) == ["quick", "fox"]


class TestBackwardAndBidirectional:
    """Test suite for backward and bidirectional walks."""

    def test_backward_ends_at_sentence_end(self, greeting_model):
        """Test backward output is in reading order and ends with the last word."""
        tokens = MarkovGenerator(np.random.default_rng(3)).generate(
            greeting_model, 10, mode=GenerationMode.BACKWARD
        )

        assert tokens
        assert tokens[-1] == "world"
        assert set(tokens) <= GREETING_VOCAB
        assert_greeting_chain(tokens)

    def test_bidirectional_vocabulary(self, greeting_model):
        """Test bidirectional output stays inside the vocabulary and the chain."""
        for seed in range(20):
            tokens = MarkovGenerator().generate(
                greeting_model, 6, seed=seed, mode=GenerationMode.BIDIRECTIONAL
            )
            assert 1 <= len(tokens) <= 6
            assert set(tokens) <= GREETING_VOCAB
            assert_greeting_chain(tokens)

    def test_bidirectional_anchor_kept(self, greeting_model):
        """Test the anchor appears in the output."""
        tokens = MarkovGenerator(np.random.default_rng(5)).generate(
            greeting_model, 6, mode=GenerationMode.BIDIRECTIONAL, anchor=["friend"]
        )

        assert "friend" in tokens
        assert len(tokens) <= 6

    def test_bidirectional_reuses_anchor_pool(self, greeting_model, monkeypatch):
        """Test repeated bidirectional walks scan the forward contexts only once."""
        calls = []
        contexts = greeting_model.forward.contexts

        def counting_contexts():
            calls.append(1)
            return contexts()

        monkeypatch.setattr(greeting_model.forward, "contexts", counting_contexts)
        gen = MarkovGenerator(np.random.default_rng(1))
        for _ in range(10):
            gen.generate(greeting_model, 6, mode=GenerationMode.BIDIRECTIONAL)

        assert len(calls) == 1

    @pytest.mark.parametrize("mode", [GenerationMode.BACKWARD, GenerationMode.BIDIRECTIONAL])
    def test_requires_backward_table(self, mode):
        """Test modes needing the backward table fail on forward-only models."""
        model = build_model("a b c", backward=False)

        with pytest.raises(DirectionDisabledError):
            MarkovGenerator().generate(model, 5, mode=mode)

    def test_forward_requires_forward_table(self):
        """Test forward mode fails on backward-only models."""
        model = build_model("a b c", forward=False)

        with pytest.raises(DirectionDisabledError):
            MarkovGenerator().generate(model, 5, mode=GenerationMode.FORWARD)


class TestDeterminism:
    """Output depends only on the seed."""

    @pytest.mark.parametrize("mode", ALL_MODES)
    def test_same_seed_same_output(self, long_text, mode):
        """Test identical seeds give identical sequences."""
        model = build_model(long_text, order=1)
        runs = []
        for _ in range(2):
            gen = MarkovGenerator(np.random.default_rng(7))
            runs.append([gen.generate(model, 12, mode=mode) for _ in range(3)])

        assert runs[0] == runs[1]

    def test_call_seed_overrides_shared_source(self, long_text):
        """Test a per-call seed ignores the shared random state."""
        model = build_model(long_text, order=1)
        gen = MarkovGenerator(np.random.default_rng(0))
        first = gen.generate(model, 10, seed=99)
        gen.generate(model, 10)
        second = gen.generate(model, 10, seed=99)

        assert first == second

    def test_insertion_order_does_not_matter(self):
        """Test equal-weight candidates are picked by draw, not insertion order."""
        def model_with(order_of_insertion):
            table = ChainTable(1)
            for token in order_of_insertion:
                table.transitions[(BOS,)][token] += 1
            table.anchors[(BOS,)] += 1
            return ChainModel("m", 1, forward=table)

        ab = model_with(["a", "b", "c"])
        cb = model_with(["c", "b", "a"])
        for seed in range(20):
            assert MarkovGenerator().generate(ab, 1, seed=seed) == MarkovGenerator().generate(cb, 1, seed=seed)


class TestWeightedChoice:
    """Test suite for the weighted sampler."""

    def test_proportional(self):
        """Test picks follow count / total."""
        rng = np.random.default_rng(11)
        picks = Counter(
            MarkovGenerator._weighted_choice(rng, [("a", 3), ("b", 1)]) for _ in range(4000)
        )

        assert 0.7 < picks["a"] / 4000 < 0.8

    def test_sole_candidate(self):
        """Test a sole candidate is always chosen."""
        rng = np.random.default_rng(0)

        assert all(MarkovGenerator._weighted_choice(rng, [("x", 5)]) == "x" for _ in range(50))
