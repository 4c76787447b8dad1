"""Cache-aside view of the remote record store.

One slot per record kind. A slot is either absent or holds the complete list
returned by the last successful fetch. Every mutation goes through this class
so that the write-through invalidation can not be bypassed.

Invalidation bumps a per-kind generation counter. A fetch remembers the
generation it started under and only writes its result into the slot if no
invalidation happened meanwhile, so a fetch that was already in flight when a
save completed can not bring back the pre-save list. Misses that overlap
share the fetch in flight for the current generation; after an invalidation
new misses start their own.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from loguru import logger

from impscope.types import (
    Record,
    RecordKind,
    RecordStoreProtocol,
    RemoteUnavailable,
    validate_device_id,
    validate_record,
)


@dataclass
class CacheEntry:
    records: list = field(default_factory=list)
    present: bool = False
    fetched_at: Optional[float] = None


@dataclass
class _PendingFetch:
    generation: int
    task: asyncio.Task
    waiters: int = 0


class RemoteSyncCache:
    """Cache-aside layer over a `RecordStoreProtocol`.

    Parameters
    ----------
    store : RecordStoreProtocol
        The remote record store.
    max_age : float, optional
        Seconds after which a populated slot counts as absent. None (default)
        keeps slots until they are invalidated.
    clock : Callable[[], float]
        Monotonic time source, by default `time.monotonic`.
    """

    def __init__(
        self,
        store: RecordStoreProtocol,
        max_age: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not isinstance(store, RecordStoreProtocol):
            raise TypeError(
                f"{type(store).__name__} does not implement RecordStoreProtocol"
            )
        self._store = store
        self.max_age = max_age
        self._clock = clock
        self._slots: dict[RecordKind, CacheEntry] = {k: CacheEntry() for k in RecordKind}
        self._generation: dict[RecordKind, int] = {k: 0 for k in RecordKind}
        self._pending: dict[RecordKind, _PendingFetch] = {}
        self._closed = False

    # ------------------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------------------

    def _is_fresh(self, slot: CacheEntry) -> bool:
        if not slot.present:
            return False
        if self.max_age is None:
            return True
        return self._clock() - slot.fetched_at < self.max_age

    def peek(self, kind: RecordKind) -> Optional[list[Record]]:
        """Cached records of `kind` without any remote call, None if absent."""
        slot = self._slots[RecordKind(kind)]
        return list(slot.records) if self._is_fresh(slot) else None

    async def get(self, kind: RecordKind, force_refresh: bool = False) -> list[Record]:
        """Records of `kind`, fetched from the store on a miss.

        Concurrent misses of the same generation share one remote fetch;
        `force_refresh` always starts a new one.

        Raises
        ------
        RemoteUnavailable
            If the fetch fails. The slot keeps its previous state; whether to
            show stale data (see `peek`) is up to the caller.
        """
        kind = RecordKind(kind)
        slot = self._slots[kind]
        if not force_refresh and self._is_fresh(slot):
            logger.debug("Cache hit for {} ({} records).", kind.value, len(slot.records))
            return list(slot.records)

        generation = self._generation[kind]
        pending = self._pending.get(kind)
        if (
            not force_refresh
            and pending is not None
            and pending.generation == generation
            and not pending.task.done()
        ):
            logger.debug("Joining in-flight {} fetch (generation {}).", kind.value, generation)
        else:
            logger.info(
                "Fetching {} records (generation {}, forced={}).",
                kind.value,
                generation,
                force_refresh,
            )
            pending = _PendingFetch(
                generation, asyncio.create_task(self._fetch(kind, generation))
            )
            self._pending[kind] = pending

        pending.waiters += 1
        try:
            records = await asyncio.shield(pending.task)
        except asyncio.CancelledError:
            logger.debug("Fetch of {} records cancelled.", kind.value)
            raise
        finally:
            pending.waiters -= 1
            if pending.task.done() or pending.waiters == 0:
                if self._pending.get(kind) is pending:
                    del self._pending[kind]
                # last waiter gone
                if not pending.task.done():
                    pending.task.cancel()
        return list(records)

    async def _fetch(self, kind: RecordKind, generation: int) -> list[Record]:
        try:
            records = list(await self._store.list_all(kind))
        except Exception as e:
            logger.warning("Fetch of {} records failed: {}", kind.value, e)
            raise RemoteUnavailable(f"Could not fetch {kind.value} records", e) from e

        if self._closed or generation != self._generation[kind]:
            logger.warning(
                "Discarding stale {} fetch (generation {} < {}).",
                kind.value,
                generation,
                self._generation[kind],
            )
        else:
            self._slots[kind] = CacheEntry(list(records), True, self._clock())
        return records

    async def find(
        self, kind: RecordKind, device_id: str, force_refresh: bool = False
    ) -> Optional[Record]:
        """Latest record of `device_id` (by date), None if there is none."""
        records = await self.get(kind, force_refresh)
        found = [r for r in records if r.device_id == device_id]
        if not found:
            return None
        return max(found, key=lambda r: r.date)

    async def has_record(self, kind: RecordKind, device_id: str) -> bool:
        return await self.find(kind, device_id) is not None

    # ------------------------------------------------------------------------------
    # invalidation
    # ------------------------------------------------------------------------------

    def invalidate(self, kind: RecordKind) -> None:
        kind = RecordKind(kind)
        self._generation[kind] += 1
        self._pending.pop(kind, None)
        self._slots[kind] = CacheEntry()
        logger.debug(
            "Invalidated {} cache (generation {}).", kind.value, self._generation[kind]
        )

    def invalidate_all(self) -> None:
        for kind in RecordKind:
            self.invalidate(kind)

    def close(self) -> None:
        """Drop all slots; fetches still in flight will not write back."""
        self.invalidate_all()
        self._closed = True

    # ------------------------------------------------------------------------------
    # mutations (write-through invalidation)
    # ------------------------------------------------------------------------------

    async def save(self, kind: RecordKind, record: Record) -> bool:
        kind = RecordKind(kind)
        is_valid, msg = validate_record(record)
        if not is_valid:
            logger.warning("Not saving {} record: {}", kind.value, msg)
            return False
        try:
            ok = bool(await self._store.save(kind, record))
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Saving {} record for {} failed.", kind.value, record.device_id)
            return False
        if ok:
            logger.info("Saved {} record for {}.", kind.value, record.device_id)
            self.invalidate(kind)
        else:
            logger.warning("Store refused {} record for {}.", kind.value, record.device_id)
        return ok

    async def delete(self, kind: RecordKind, device_id: str) -> bool:
        kind = RecordKind(kind)
        is_valid, msg = validate_device_id(device_id)
        if not is_valid:
            logger.warning("Not deleting {} record: {}", kind.value, msg)
            return False
        try:
            ok = bool(await self._store.delete(kind, device_id))
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Deleting {} record for {} failed.", kind.value, device_id)
            return False
        if ok:
            logger.info("Deleted {} record for {}.", kind.value, device_id)
            self.invalidate(kind)
        else:
            logger.warning("No {} record deleted for {}.", kind.value, device_id)
        return ok

    def status(self) -> dict[str, dict]:
        now = self._clock()
        out = {}
        for kind, slot in self._slots.items():
            out[kind.value] = {
                "cached": self._is_fresh(slot),
                "count": len(slot.records),
                "age": None if slot.fetched_at is None else now - slot.fetched_at,
                "generation": self._generation[kind],
            }
        return out
