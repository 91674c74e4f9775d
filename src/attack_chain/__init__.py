"""
Attack chain engine for action cards.

Resolves an action card (a rollable item plus damage, status and
transformation riders) against locked targets, with repetition, resource
costs and GM approval gating.
"""

__version__ = "0.1.0"
