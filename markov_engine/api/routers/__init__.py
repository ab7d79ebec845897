"""
API Routers Package
Exposes all route modules for the Markov service
"""

from . import markov_router

__all__ = [
    "markov_router",
]
