"""
Core package - Contains main business logic.
"""

from core.classifier import ProvenanceClassifier
from core.state_manager import StateManager, InMemoryStateManager, StateError
from core.registry import NewAppsRegistry
from core.detector import NewAppsDetector

__all__ = [
    'ProvenanceClassifier',
    'StateManager',
    'InMemoryStateManager',
    'StateError',
    'NewAppsRegistry',
    'NewAppsDetector'
]
