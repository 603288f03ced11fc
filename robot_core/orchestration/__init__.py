"""
Orchestration Module
Multi-step game actions sequenced across mechanisms
"""

from .actions import Action, goal, block, run_until
from .orchestrator import ActionOrchestrator, OrchestratorState
from .superstructure import Superstructure, LevelSelector

__all__ = [
    'Action',
    'goal',
    'block',
    'run_until',
    'ActionOrchestrator',
    'OrchestratorState',
    'Superstructure',
    'LevelSelector'
]
