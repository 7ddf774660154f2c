"""
Simulation module: repeats encounters, aggregates their results and renders
reports.
"""
