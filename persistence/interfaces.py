from __future__ import annotations

from typing import Protocol


class StoreError(Exception):
    """Base class for failures raised by the keyed store layer."""


class StoreBackendError(StoreError):
    """The backend could not be reached or refused the operation."""

    def __init__(self, operation: str, key: str, cause: BaseException | None = None):
        self.operation = operation
        self.key = key
        self.cause = cause
        super().__init__(f"{operation} failed for {key!r}: {cause!r}")


class MalformedRecordError(StoreError):
    """A stored value is not valid JSON or does not match its record schema."""

    def __init__(self, key: str, detail: str):
        self.key = key
        self.detail = detail
        super().__init__(f"malformed record at {key!r}: {detail}")


class InvalidKeyError(StoreError, ValueError):
    """The key cannot be addressed by the active backend."""


class KeyedStore(Protocol):
    """
    String-keyed, string-valued persistence used by every other layer.

    Missing keys are not errors: `get` returns None and `delete` is a no-op.
    """

    async def get(self, key: str) -> str | None:
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def list(self, prefix: str = "") -> list[str]:
        """Return every stored key that starts with `prefix`."""
        ...

    async def clear(self) -> None:
        ...

    async def aclose(self) -> None:
        ...
