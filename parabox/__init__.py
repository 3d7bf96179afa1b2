"""
Parabox - Recursive Box-Pushing Puzzle Engine

A deterministic simulation engine for grid puzzles where boxes contain
whole nested boards (possibly looping back to an ancestor). The engine
provides:
- A recursive spatial model (boards, cells, entities)
- Push-chain move resolution across containment boundaries
- Exact undo and restart
- Win evaluation
"""

__version__ = "0.1.0"
