"""Record store implementations of `RecordStoreProtocol`.

- `InMemoryRecordStore`: process-local, with failure injection and call
  counting, used by tests and the mock CLI mode.
- `JsonRecordStore`: one JSON document per collection in a directory.

Both key records by device id: saving a record for a device replaces its
previous record, as the remote document store does.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import simplejson as json
from loguru import logger

from impscope.types import Record, RecordKind, record_from_dict

DEFAULT_COLLECTIONS = {
    RecordKind.CALIBRATION: "alternativeImpedanceParam",
    RecordKind.MEASUREMENT: "testNewImpedanceParam",
}


class StoreError(ConnectionError):
    """Transport-level failure of a record store."""

    pass


class InMemoryRecordStore:
    """Record store held in memory.

    Parameters
    ----------
    latency : float
        Seconds each call sleeps before completing, to exercise suspension.
    """

    def __init__(self, latency: float = 0.0):
        self._docs: dict[RecordKind, dict[str, Record]] = {k: {} for k in RecordKind}
        self.latency = latency
        self.fail_list = False
        self.fail_mutations = False
        self.list_calls: dict[RecordKind, int] = {k: 0 for k in RecordKind}
        # when set, list_all waits on it before reading (tests hold fetches open)
        self.list_gate: Optional[asyncio.Event] = None

    def seed(self, kind: RecordKind, records: list[Record]) -> None:
        for record in records:
            self._docs[RecordKind(kind)][record.device_id] = record

    async def _io(self) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)

    async def list_all(self, kind: RecordKind) -> list[Record]:
        kind = RecordKind(kind)
        self.list_calls[kind] += 1
        await self._io()
        if self.list_gate is not None:
            await self.list_gate.wait()
        if self.fail_list:
            raise StoreError(f"list_all({kind.value}) failed")
        return list(self._docs[kind].values())

    async def save(self, kind: RecordKind, record: Record) -> bool:
        await self._io()
        if self.fail_mutations:
            raise StoreError(f"save({kind.value}) failed")
        self._docs[RecordKind(kind)][record.device_id] = record
        return True

    async def delete(self, kind: RecordKind, device_id: str) -> bool:
        await self._io()
        if self.fail_mutations:
            raise StoreError(f"delete({kind.value}) failed")
        return self._docs[RecordKind(kind)].pop(device_id, None) is not None


class JsonRecordStore:
    """Record store backed by ``<root>/<collection>.json`` files."""

    def __init__(
        self,
        root: Path | str,
        collections: Optional[dict[RecordKind, str]] = None,
    ):
        self.root = Path(root)
        self.collections = dict(DEFAULT_COLLECTIONS)
        if collections:
            self.collections.update(
                {RecordKind(k): v for k, v in collections.items()}
            )
        # serialises read-modify-write of the collection files
        self._write_lock = asyncio.Lock()

    def path_for(self, kind: RecordKind) -> Path:
        return self.root / f"{self.collections[RecordKind(kind)]}.json"

    def _read(self, kind: RecordKind) -> dict[str, dict]:
        path = self.path_for(kind)
        if not path.exists():
            return {}
        try:
            with open(path) as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Could not read {path}: {e}") from e

    def _write(self, kind: RecordKind, docs: dict[str, dict]) -> None:
        path = self.path_for(kind)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            with open(tmp, "w") as f:
                json.dump(docs, f, indent=2)
            tmp.replace(path)
        except OSError as e:
            raise StoreError(f"Could not write {path}: {e}") from e

    async def list_all(self, kind: RecordKind) -> list[Record]:
        docs = await asyncio.to_thread(self._read, kind)
        records = []
        for doc_id, doc in docs.items():
            try:
                records.append(record_from_dict(kind, doc))
            except Exception:
                logger.exception("Skipping unreadable {} document {}", kind, doc_id)
        return records

    async def save(self, kind: RecordKind, record: Record) -> bool:
        async with self._write_lock:
            docs = await asyncio.to_thread(self._read, kind)
            docs[record.device_id] = record.to_dict()
            await asyncio.to_thread(self._write, kind, docs)
        return True

    async def delete(self, kind: RecordKind, device_id: str) -> bool:
        async with self._write_lock:
            docs = await asyncio.to_thread(self._read, kind)
            if docs.pop(device_id, None) is None:
                return False
            await asyncio.to_thread(self._write, kind, docs)
        return True
