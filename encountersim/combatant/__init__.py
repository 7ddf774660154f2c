"""
Combatant module: immutable configurations and the per-run mutable state built
from them.
"""
