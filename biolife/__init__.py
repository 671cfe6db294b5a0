"""
BioLife Simulation Engine

A deterministic, headless engine for soft-bodied creatures that swim through
a viscous 2D medium, compete for energy, and evolve by mutation and crossover.

Architecture: the World is the source of truth. Renderers and schedulers are
consumers that read snapshots between ticks.
"""

__version__ = "0.1.0"
