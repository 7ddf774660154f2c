"""
Encounter simulator.

Runs tabletop RPG combat encounters between a party and a group of monsters
many times over and reports how often the party wins.
"""

__version__ = "0.1.0"
