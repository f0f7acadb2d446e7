"""UserDirectoryPort — lookup/search over user identities."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Protocol, Set, runtime_checkable


@runtime_checkable
class UserDirectoryPort(Protocol):
    @property
    def source_name(self) -> str: ...

    async def bulk_get(self, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]: ...

    async def search(self, query: str) -> Set[str]: ...

    async def close(self) -> None: ...
