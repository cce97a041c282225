"""Permission verdict returned by ``Access.check``."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

PERMISSION_DENIED_MESSAGE = "Permission denied"


@dataclass(frozen=True)
class Permission:
    """Immutable grant/deny verdict.

    ``message`` is only kept on denied verdicts and ``attributes`` only on
    granted ones; values passed for the other case are dropped.
    """

    granted: bool
    message: str | None = None
    attributes: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "granted", self.granted is True)
        if self.granted:
            object.__setattr__(self, "message", None)
            if self.attributes is not None:
                object.__setattr__(self, "attributes", tuple(self.attributes))
        else:
            object.__setattr__(self, "attributes", None)
            if not self.message:
                object.__setattr__(self, "message", None)

    @classmethod
    def allow(cls, attributes: Sequence[str] | None = None) -> "Permission":
        return cls(granted=True, attributes=None if attributes is None else tuple(attributes))

    @classmethod
    def deny(cls, message: str | None = PERMISSION_DENIED_MESSAGE) -> "Permission":
        return cls(granted=False, message=message)

    @property
    def denied(self) -> bool:
        return not self.granted

    def filter(self, data: Any) -> Any:
        """Project ``data`` onto the granted attributes.

        No attributes: ``data`` is returned unchanged. A list or tuple is
        projected element by element (order and length preserved). Any other
        value becomes a new dict holding one key per attribute path; a path
        missing from the input yields ``None`` at that key.
        """
        attributes = self.attributes
        if attributes is None:
            return data
        if isinstance(data, (list, tuple)):
            return [_project(item, attributes) for item in data]
        return _project(data, attributes)


_MISSING = object()


def _project(data: Any, attributes: tuple[str, ...]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for path in attributes:
        value = get_path(data, path, _MISSING)
        result[path] = None if value is _MISSING else value
    return result


def get_path(data: Any, path: str, default: Any = None) -> Any:
    """Read a dot-notation path from mappings, sequences and objects.

    Segments index mappings by key (a numeric segment also matches an
    integer key), lists/tuples by integer position, and
    fall back to attribute access for other objects (e.g. pydantic models).
    """
    current = data
    for segment in path.split("."):
        if isinstance(current, Mapping):
            if segment in current:
                current = current[segment]
            elif segment.isdigit() and int(segment) in current:
                current = current[int(segment)]
            else:
                return default
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            if not segment.isdigit() or int(segment) >= len(current):
                return default
            current = current[int(segment)]
        elif current is not None and not isinstance(current, (str, bytes, int, float, bool)):
            current = getattr(current, segment, _MISSING)
            if current is _MISSING:
                return default
        else:
            return default
    return current


__all__ = ["PERMISSION_DENIED_MESSAGE", "Permission", "get_path"]
