"""Access guards: named checks over untrusted input.

Guards cover one-off authorization decisions that do not fit a
resource/action pair, e.g. "does this account manage that account". A guard
validates raw input against a schema, then hands the parsed value to a
predicate that may consult external state.

Every failure mode resolves to ``False``:
- input that does not match the schema,
- an unknown guard name,
- a predicate that raises.

Example::

    class OwnAccount(BaseModel):
        account_id: str

    guards = GuardRegistry([
        Guard("account:own", OwnAccount, lambda i: i.account_id == current_account_id),
    ])
    await guards.check("account:own", {"account_id": current_account_id})  # True
    await guards.check("account:own", {"malformed": True})                  # False
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, Union

from pydantic import TypeAdapter, ValidationError

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

GuardHandler = Callable[[Any], Union[bool, Awaitable[bool]]]


class Guard:
    """Schema-validated predicate over untrusted input.

    Args:
        name: Registry name (e.g. ``"account:own"``).
        input: Input schema (pydantic model or any ``TypeAdapter`` type).
        check: Predicate over the parsed input, sync or async.
    """

    __slots__ = ("_name", "_input", "_adapter", "_handler")

    def __init__(self, name: str, input: Any, check: GuardHandler) -> None:
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"Guard name must be a non-empty string, got {name!r}")
        if not callable(check):
            raise ConfigurationError(f"Guard '{name}' check must be callable")
        self._name = name
        self._input = input
        self._adapter = TypeAdapter(input)
        self._handler = check

    @property
    def name(self) -> str:
        return self._name

    @property
    def input(self) -> Any:
        return self._input

    def __repr__(self) -> str:
        return f"Guard(name={self._name!r})"

    async def check(self, raw_input: Any) -> bool:
        """Validate ``raw_input`` and run the predicate on the parsed value."""
        try:
            parsed = self._adapter.validate_python(raw_input)
        except ValidationError:
            logger.debug("Guard '%s' rejected input", self._name)
            return False
        except Exception as e:
            logger.warning("Guard '%s' input parsing raised %s", self._name, type(e).__name__)
            return False

        try:
            result = self._handler(parsed)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.warning("Guard '%s' check raised %s: %s", self._name, type(e).__name__, e)
            return False

        return bool(result)


class GuardRegistry:
    """Fixed set of guards, looked up by exact name."""

    def __init__(self, guards: Iterable[Guard] = ()) -> None:
        registry: dict[str, Guard] = {}
        for guard in guards:
            if not isinstance(guard, Guard):
                raise ConfigurationError(f"Expected Guard, got {type(guard).__name__}")
            if guard.name in registry:
                raise ConfigurationError(f"Duplicate guard name: '{guard.name}'")
            registry[guard.name] = guard
        self._guards = registry

    def __contains__(self, name: object) -> bool:
        return name in self._guards

    def __len__(self) -> int:
        return len(self._guards)

    def names(self) -> tuple[str, ...]:
        return tuple(self._guards)

    def get(self, name: str) -> Guard | None:
        return self._guards.get(name)

    async def check(self, name: str, raw_input: Any) -> bool:
        """Run the named guard. Unknown names resolve to ``False``."""
        guard = self._guards.get(name)
        if guard is None:
            logger.debug("Unknown guard '%s'", name)
            return False
        return await guard.check(raw_input)


__all__ = ["Guard", "GuardHandler", "GuardRegistry"]
