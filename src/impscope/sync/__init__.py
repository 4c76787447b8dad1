"""
Record synchronisation: cache-aside access to the record store and the
filter/sort/paginate view used to browse it.

Examples
--------
```python
from impscope.sync import InMemoryRecordStore, RemoteSyncCache, QueryState
from impscope.types import RecordKind

cache = RemoteSyncCache(InMemoryRecordStore())
records = await cache.get(RecordKind.CALIBRATION)
state = QueryState()
state.set_query("ab12")
page = state.view(records)
```

See Also
--------
impscope.sync.cache : Cache slots, generation counters, write-through invalidation
impscope.sync.query : Filter, stable sort and pagination
impscope.sync.stores : Record store implementations
"""

from .cache import CacheEntry, RemoteSyncCache
from .query import Page, QueryState, SortField, SortOrder, apply, sort_records
from .stores import (
    DEFAULT_COLLECTIONS,
    InMemoryRecordStore,
    JsonRecordStore,
    StoreError,
)

__all__ = [
    "CacheEntry",
    "RemoteSyncCache",
    "Page",
    "QueryState",
    "SortField",
    "SortOrder",
    "apply",
    "sort_records",
    "DEFAULT_COLLECTIONS",
    "InMemoryRecordStore",
    "JsonRecordStore",
    "StoreError",
]
