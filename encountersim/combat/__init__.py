"""
Combat module for the encounter simulator.

This module handles the combat mechanics: damage and saving throws, targeting
and positioning, attacks and reactions, the combat log and the round loop of
`combat_manager`.
"""

from .log import BaseEntry, LogEntry

__all__ = ["BaseEntry", "LogEntry"]
