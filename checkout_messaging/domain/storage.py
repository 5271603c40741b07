"""Key-value store abstraction for dismissal state"""

from typing import Dict, Optional, Protocol


class KeyValueStore(Protocol):
    """
    Storage used for the dismissed-banner set.

    Implementations raise StorageUnavailableError when the backing store
    cannot be read or written.
    """

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def clear(self, key: str) -> None: ...


class InMemoryStore:
    """Process-local store, used for session-scoped dismissal state"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def clear(self, key: str) -> None:
        self.values.pop(key, None)
