"""
State Manager - Handles persistence of package identifier sets.
"""

import os
import json
import logging
import tempfile
from abc import ABC, abstractmethod
from typing import Dict, Set, Iterable
from threading import Lock


DEFAULT_NAMESPACE = 'sideguard'


class StateError(Exception):
    """Raised when persisted state cannot be read."""


class SetStore(ABC):
    """Key-value store holding sets of strings under a namespace."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE):
        self.namespace = namespace
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def get_set(self, key: str) -> Set[str]:
        """
        Read the set stored under key.

        Returns:
            A copy of the stored set, empty if the key was never written

        Raises:
            StateError: if the stored state cannot be read
        """
        pass

    @abstractmethod
    def put_set(self, key: str, values: Iterable[str]) -> bool:
        """
        Replace the set stored under key in a single commit.

        Returns:
            True if the write was committed
        """
        pass

    @abstractmethod
    def remove_set(self, key: str) -> bool:
        """
        Remove key and its set in a single commit.

        Returns:
            True if the removal was committed
        """
        pass


class StateManager(SetStore):
    """JSON file store, one file per namespace."""

    def __init__(self, state_file: str = None, namespace: str = DEFAULT_NAMESPACE):
        """
        Initialize state manager.

        Args:
            state_file: Path to state JSON file
            namespace: Namespace name, used for the default file name
        """
        super().__init__(namespace)
        if state_file is None:
            base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
            state_file = os.path.join(base_dir, 'state', f'{namespace}.json')

        self.state_file = state_file
        self._lock = Lock()

    def _load_state(self) -> Dict[str, list]:
        """Load state from file."""
        if not os.path.exists(self.state_file):
            return {}
        try:
            with open(self.state_file, 'r', encoding='utf-8') as f:
                state = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise StateError(f"Could not load state file {self.state_file}: {e}") from e

        if not isinstance(state, dict):
            raise StateError(f"State file {self.state_file} does not hold an object")
        return state

    def _save_state(self, state: Dict[str, list]) -> bool:
        """Write state to a temp file and move it into place."""
        directory = os.path.dirname(self.state_file) or '.'
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(state, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.state_file)
            return True
        except OSError as e:
            self.logger.error(f"Error saving state file {self.state_file}: {e}")
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            return False

    def get_set(self, key: str) -> Set[str]:
        with self._lock:
            values = self._load_state().get(key, [])
            if not isinstance(values, list):
                raise StateError(f"Key '{key}' in {self.state_file} does not hold a list")
            return {str(value) for value in values}

    def put_set(self, key: str, values: Iterable[str]) -> bool:
        with self._lock:
            try:
                state = self._load_state()
            except StateError as e:
                self.logger.error(f"Refusing to overwrite unreadable state: {e}")
                return False
            state[key] = sorted(set(values))
            return self._save_state(state)

    def remove_set(self, key: str) -> bool:
        with self._lock:
            try:
                state = self._load_state()
            except StateError as e:
                # Removing the key from a corrupt file means starting over
                self.logger.warning(f"Discarding unreadable state: {e}")
                state = {}
            state.pop(key, None)
            return self._save_state(state)


class InMemoryStateManager(SetStore):
    """Process-local store, used where no durable state is wanted."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE, initial: Dict[str, Iterable[str]] = None):
        super().__init__(namespace)
        self._lock = Lock()
        self._state: Dict[str, Set[str]] = {
            key: set(values) for key, values in (initial or {}).items()
        }

    def get_set(self, key: str) -> Set[str]:
        with self._lock:
            return set(self._state.get(key, set()))

    def put_set(self, key: str, values: Iterable[str]) -> bool:
        with self._lock:
            self._state[key] = set(values)
            return True

    def remove_set(self, key: str) -> bool:
        with self._lock:
            self._state.pop(key, None)
            return True
