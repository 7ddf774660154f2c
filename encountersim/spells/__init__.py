"""
Spells: the spell catalogue and the spellcasting AI.
"""
