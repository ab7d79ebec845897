"""
Error taxonomy for the Markov generator.
Dead-end chains are not errors; generation simply returns what it has.
"""


class MarkovError(Exception):
    """Base class for generator errors."""


class EmptyInputError(MarkovError, ValueError):
    """Tokenizer was given empty or whitespace-only text."""


class OrderTooLargeError(MarkovError, ValueError):
    """No context window of the requested order fits in the corpus."""

    def __init__(self, order: int, token_count: int):
        super().__init__(
            f"order {order} needs more than {order} tokens, corpus has {token_count}"
        )
        self.order = order
        self.token_count = token_count


class OrderMismatchError(MarkovError):
    """An existing model was re-trained with a different order without a reset."""

    def __init__(self, model_id: str, existing: int, requested: int):
        super().__init__(
            f"model '{model_id}' has order {existing}, requested {requested}; reset it first"
        )
        self.model_id = model_id
        self.existing = existing
        self.requested = requested


class NotReadyError(MarkovError):
    """Operation called while the system is not in the Ready state."""


class UnknownModelError(MarkovError, KeyError):
    """Generate/reset/stats on a model id that was never trained (or was evicted)."""

    def __init__(self, model_id: str):
        super().__init__(model_id)
        self.model_id = model_id

    def __str__(self):
        return f"unknown model '{self.model_id}'"


class DirectionDisabledError(MarkovError):
    """Generation mode needs a chain table the model was not built with."""
