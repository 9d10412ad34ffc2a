from typing import Any, Dict, Hashable, Optional, Tuple


class QueryCache:
    """Simple in-memory cache keyed by operation name + parameters.

    Last writer wins; entries are only superseded by writing the same key.
    """

    def __init__(self) -> None:
        self._memory: Dict[Tuple[Hashable, ...], Any] = {}

    def _key(self, operation: str, params: Tuple[Any, ...]) -> Tuple[Hashable, ...]:
        return (operation,) + tuple(_freeze(p) for p in params)

    def get(self, operation: str, *params: Any) -> Optional[Any]:
        key = self._key(operation, params)
        return self._memory.get(key)

    def contains(self, operation: str, *params: Any) -> bool:
        return self._key(operation, params) in self._memory

    def set(self, operation: str, *params: Any, value: Any) -> None:
        key = self._key(operation, params)
        self._memory[key] = value

    def clear(self) -> None:
        self._memory.clear()

    def __len__(self) -> int:
        return len(self._memory)


def _freeze(value: Any) -> Hashable:
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value
