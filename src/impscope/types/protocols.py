"""Protocol for the remote record store collaborator.

The store is reached over the network (or disk) and is therefore the only
asynchronous dependency of the core. Anything implementing these three
coroutines can back a `impscope.sync.RemoteSyncCache`; see
`impscope.sync.stores` for the in-memory and JSON implementations.

Example
-------
    class MyStore:
        async def list_all(self, kind): ...
        async def save(self, kind, record): ...
        async def delete(self, kind, device_id): ...

    assert isinstance(MyStore(), RecordStoreProtocol)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .records import Record, RecordKind


@runtime_checkable
class RecordStoreProtocol(Protocol):
    async def list_all(self, kind: RecordKind) -> list[Record]:
        """Return every record of `kind`. Raise on transport failure."""
        ...

    async def save(self, kind: RecordKind, record: Record) -> bool:
        """Persist `record`, replacing any record of the same device id."""
        ...

    async def delete(self, kind: RecordKind, device_id: str) -> bool:
        """Delete the record(s) of `device_id`."""
        ...
