"""In-process configuration layer consulted by collaborators during a run."""

import os
from typing import Dict, Mapping, MutableMapping, Optional


class LiveSettings:
    """Current settings as the running process and its children see them.

    Backed by ``os.environ`` unless another mapping is given. Values pushed
    here take effect for the rest of the run without a restart.
    """

    def __init__(self, store: Optional[MutableMapping[str, str]] = None):
        self._store = os.environ if store is None else store

    def seed(self, values: Mapping[str, str]):
        # Real environment variables win over values read from the file.
        for key, value in values.items():
            if key not in self._store:
                self._store[key] = value

    def update(self, values: Mapping[str, str]):
        for key, value in values.items():
            self._store[key] = value

    def set(self, key: str, value: str):
        self._store[key] = value

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._store.get(key, default)

    def snapshot(self) -> Dict[str, str]:
        return dict(self._store)
