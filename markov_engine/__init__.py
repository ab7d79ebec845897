"""
Markov Engine
Markov chain text generator: n-gram training, seeded sampling,
bidirectional generation, and LRU-bounded model memory.
"""

__version__ = "1.0.0"
