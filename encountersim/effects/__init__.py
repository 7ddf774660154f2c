"""
Effects module for the encounter simulator.

This module contains the condition catalogue and the concentration rules.
"""
