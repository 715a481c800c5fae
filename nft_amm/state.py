"""
Write-buffered state store.

Pool operations never write to the database directly. They work on a
snapshot that buffers every write; the snapshot is either committed into
its parent in one step or discarded, so a failed operation leaves no trace.
"""
import msgpack
import logging
from typing import Optional

logger = logging.getLogger(__name__)

# Marks a buffered delete
_DELETED = object()


class StateStore:
    """
    Key/value view over a DB (root store) or over another store (snapshot).

    Usage:
        store = StateStore(db)
        working = store.snapshot()
        working.set_obj(b'key', {'a': 1})
        working.commit()      # visible in store
        store.commit()        # flushed to the DB in one write batch
    """

    def __init__(self, db, parent: 'StateStore' = None):
        self.db = db
        self.parent = parent
        self._writes: dict = {}
        # Pools with an operation in progress; only the root's set is used
        self.in_flight: set = set()

    @property
    def root(self) -> 'StateStore':
        """Outermost store of this snapshot chain."""
        store = self
        while store.parent is not None:
            store = store.parent
        return store

    def get(self, key: bytes) -> Optional[bytes]:
        if key in self._writes:
            value = self._writes[key]
            return None if value is _DELETED else value
        if self.parent is not None:
            return self.parent.get(key)
        return self.db.get(key)

    def set(self, key: bytes, value: bytes):
        self._writes[key] = value

    def delete(self, key: bytes):
        self._writes[key] = _DELETED

    def get_obj(self, key: bytes):
        """msgpack-decoded value under key, or None."""
        raw = self.get(key)
        if raw is None:
            return None
        return msgpack.unpackb(raw, raw=False)

    def set_obj(self, key: bytes, obj):
        self.set(key, msgpack.packb(obj, use_bin_type=True))

    def snapshot(self) -> 'StateStore':
        """Child store whose writes stay private until commit()."""
        return StateStore(self.db, parent=self)

    @property
    def pending(self) -> int:
        """Number of buffered writes."""
        return len(self._writes)

    def commit(self):
        """Push buffered writes to the parent store, or to the DB for a root store."""
        if self.parent is not None:
            self.parent._writes.update(self._writes)
        elif self._writes:
            with self.db.write_batch() as batch:
                for key, value in self._writes.items():
                    if value is _DELETED:
                        batch.delete(key)
                    else:
                        batch.put(key, value)
            logger.debug(f"Flushed {len(self._writes)} writes to database")
        self._writes.clear()

    def discard(self):
        """Drop buffered writes."""
        self._writes.clear()
