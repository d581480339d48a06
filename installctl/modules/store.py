"""
Cluster record store.

``ClusterStore`` defines the contract the API and the reconciler share and
implements it on top of four backend hooks. ``MemoryStore`` keeps records in
a dict (tests, throwaway servers); ``FileStore`` keeps them in one JSON
document that is atomically replaced on every write.

Concurrency:

- Every operation runs under one re-entrant lock, so calls for different names
  never interleave and calls for the same name are serialised.
- ``put`` is an unconditional overwrite: two updates of one record both
  succeed and the later one wins.
- ``create`` is put-if-absent; of two concurrent creates of one name exactly
  one succeeds and the other raises ``ConflictError``.
- ``update`` is a read-modify-write under the same lock, so API changes never
  undo a reconciler write that lands while they are being computed.
- ``consume_gate`` is the reconciler's atomic read-and-clear of the
  continuation gate. A mutation that lands after it sets the gate again, so
  no update is lost between two reconciler passes.

Watches:

Each ``watch()`` call registers a subscriber with its own bounded queue. Every
successful write produces exactly one ``WatchEvent`` per subscriber. Producers
never block: when a queue is full the oldest event is dropped and the
subscriber's ``dropped`` counter is incremented. A cancelled watch stops
yielding immediately, even if events are still queued, and is unregistered.
"""
import collections
import json
import logging
import os
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Deque, Dict, List, Optional

from installctl.config import Config
from installctl.errors import ConflictError, NotFoundError, StoreError
from installctl.modules.models import ClusterRecord

logger = logging.getLogger("installctl.store")


class EventType(str, Enum):
    CREATED = 'created'
    UPDATED = 'updated'
    DELETED = 'deleted'


@dataclass
class WatchEvent:
    """One accepted write. ``record`` is None for deletions."""
    type: str
    name: str
    record: Optional[ClusterRecord]
    revision: int


class Watch:
    """A subscription to store writes.

    Iterate over it to receive events; iteration blocks until the next event
    and ends once the watch is cancelled, either through ``close()`` or the
    ``cancel`` event passed to ``ClusterStore.watch``.
    """

    def __init__(self, store: 'ClusterStore', buffer_size: int,
                 cancel: Optional[threading.Event] = None,
                 poll_interval: Optional[float] = None):
        if buffer_size <= 0:
            raise ValueError("buffer_size must be greater than 0")
        self._store = store
        self._cancel = cancel
        self._poll_interval = poll_interval or Config.WATCH_POLL_INTERVAL
        self._queue: Deque[WatchEvent] = collections.deque(maxlen=buffer_size)
        self._cond = threading.Condition()
        self._closed = False
        self.buffer_size = buffer_size
        self.dropped = 0

    @property
    def cancelled(self) -> bool:
        return self._closed or (self._cancel is not None and self._cancel.is_set())

    def _offer(self, event: WatchEvent) -> None:
        with self._cond:
            if self.cancelled:
                self._release()
                return
            if len(self._queue) == self.buffer_size:
                self.dropped += 1
            self._queue.append(event)
            self._cond.notify_all()

    def get(self, timeout: Optional[float] = None) -> Optional[WatchEvent]:
        """Return the next event, or None on timeout or cancellation."""
        deadline = None if timeout is None else time.monotonic() + timeout
        cancelled = False
        with self._cond:
            while True:
                if self.cancelled:
                    cancelled = True
                    self._release()
                    break
                if self._queue:
                    return self._queue.popleft()
                wait = self._poll_interval
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return None
                    wait = min(wait, remaining)
                self._cond.wait(wait)
        if cancelled:
            self._store._unsubscribe(self)
        return None

    def _release(self) -> None:
        # Caller holds self._cond.
        self._closed = True
        self._queue.clear()
        self._cond.notify_all()

    def close(self) -> None:
        """Cancel the watch and release it from the store."""
        with self._cond:
            self._release()
        self._store._unsubscribe(self)

    def __iter__(self):
        return self

    def __next__(self) -> WatchEvent:
        event = self.get()
        if event is None:
            raise StopIteration
        return event

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class ClusterStore(ABC):
    """Persistence and change notification for cluster records."""

    def __init__(self):
        self.lock = threading.RLock()
        self._watch_lock = threading.Lock()
        self._watchers: List[Watch] = []
        self._revision = 0

    # Backend hooks. Called with ``self.lock`` held; raise StoreError on failure.

    @abstractmethod
    def _load(self, name: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def _load_all(self) -> Dict[str, Dict[str, Any]]:
        ...

    @abstractmethod
    def _save(self, name: str, data: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def _remove(self, name: str) -> None:
        ...

    # Contract

    def get(self, name: str) -> Optional[ClusterRecord]:
        """Return the record for ``name``, or None when there is none."""
        with self.lock:
            data = self._load(name)
        if data is None:
            return None
        return ClusterRecord.from_dict(data)

    def get_all(self) -> Dict[str, ClusterRecord]:
        """Return every record keyed by name; empty when the store is empty."""
        with self.lock:
            all_data = self._load_all()
        return {name: ClusterRecord.from_dict(data) for name, data in (all_data or {}).items()}

    def exists(self, name: str) -> bool:
        with self.lock:
            return self._load(name) is not None

    def put(self, name: str, record: ClusterRecord) -> None:
        """Store ``record`` under ``name``, replacing whatever is there."""
        with self.lock:
            existed = self._load(name) is not None
            self._write(name, record, EventType.UPDATED if existed else EventType.CREATED)

    def create(self, name: str, record: ClusterRecord) -> None:
        """Store ``record`` only if ``name`` is free.

        Raises:
            ConflictError: If a record with this name already exists
        """
        with self.lock:
            if self._load(name) is not None:
                raise ConflictError(f"cluster '{name}' already exists")
            self._write(name, record, EventType.CREATED)

    def delete(self, name: str) -> None:
        """Remove a record for good. Deleting a missing name is a no-op."""
        with self.lock:
            if self._load(name) is None:
                return
            self._remove(name)
            self._notify(EventType.DELETED, name, None)

    def consume_gate(self, name: str) -> Optional[ClusterRecord]:
        """Atomically clear the continuation gate.

        Returns the record as it was while the gate was set (``can_continue``
        True), or None when the gate was already clear. Only the reconciler
        should call this.
        """
        with self.lock:
            data = self._load(name)
            if data is None:
                return None
            record = ClusterRecord.from_dict(data)
            if not record.can_continue:
                return None
            taken = record.copy()
            record.can_continue = False
            self._write(name, record, EventType.UPDATED)
            return taken

    def set_current_state(self, name: str, state: str) -> ClusterRecord:
        """Update only the reported state, leaving plan and gate untouched.

        Raises:
            NotFoundError: If there is no record for ``name``
        """
        with self.lock:
            data = self._load(name)
            if data is None:
                raise NotFoundError(f"cluster '{name}' not found")
            record = ClusterRecord.from_dict(data)
            record.current_state = state
            self._write(name, record, EventType.UPDATED)
            return record

    def update(self, name: str, fn: Callable[[ClusterRecord], ClusterRecord]) -> ClusterRecord:
        """Read, change and write a record as one step.

        ``fn`` gets the stored record and returns the record to write. It runs
        with the store lock held, so no other write can land in between; an
        exception raised by ``fn`` leaves the record untouched.

        Raises:
            NotFoundError: If there is no record for ``name``
        """
        with self.lock:
            data = self._load(name)
            if data is None:
                raise NotFoundError(f"cluster '{name}' not found")
            record = fn(ClusterRecord.from_dict(data))
            self._write(name, record, EventType.UPDATED)
            return record

    def watch(self, cancel: Optional[threading.Event] = None,
              buffer_size: Optional[int] = None) -> Watch:
        """Subscribe to writes made after this call."""
        w = Watch(self, Config.WATCH_BUFFER_SIZE if buffer_size is None else buffer_size, cancel=cancel)
        with self._watch_lock:
            self._watchers.append(w)
        return w

    @property
    def watcher_count(self) -> int:
        with self._watch_lock:
            return len(self._watchers)

    # Internals

    def _write(self, name: str, record: ClusterRecord, event_type: EventType) -> None:
        record = record.copy()
        record.name = name
        self._save(name, record.to_dict())
        self._notify(event_type, name, record)

    def _notify(self, event_type: EventType, name: str, record: Optional[ClusterRecord]) -> None:
        # Called with self.lock held so revisions reach every watcher in order.
        self._revision += 1
        with self._watch_lock:
            released = [w for w in self._watchers if w.cancelled]
            self._watchers = [w for w in self._watchers if w not in released]
            watchers = list(self._watchers)
        for w in released:
            with w._cond:
                w._release()
        for w in watchers:
            w._offer(WatchEvent(
                type=event_type.value,
                name=name,
                record=record.copy() if record is not None else None,
                revision=self._revision,
            ))

    def _unsubscribe(self, w: Watch) -> None:
        with self._watch_lock:
            if w in self._watchers:
                self._watchers.remove(w)


class MemoryStore(ClusterStore):
    """Keeps records in process memory."""

    def __init__(self):
        super().__init__()
        self._data: Dict[str, Dict[str, Any]] = {}

    def _load(self, name):
        data = self._data.get(name)
        return json.loads(json.dumps(data)) if data is not None else None

    def _load_all(self):
        return json.loads(json.dumps(self._data))

    def _save(self, name, data):
        self._data[name] = json.loads(json.dumps(data))

    def _remove(self, name):
        self._data.pop(name, None)


class FileStore(ClusterStore):
    """Keeps records in a single JSON document on disk."""

    def __init__(self, path: str):
        super().__init__()
        self.path = Path(path)

    def _read(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StoreError(f"could not read store file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"store file {self.path} does not hold a JSON object")
        return data

    def _write_file(self, data: Dict[str, Dict[str, Any]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".cluster-store-", dir=str(self.path.parent))
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(data, f, indent=2, sort_keys=True)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            raise StoreError(f"could not write store file {self.path}: {e}") from e

    def _load(self, name):
        return self._read().get(name)

    def _load_all(self):
        return self._read()

    def _save(self, name, data):
        all_data = self._read()
        all_data[name] = data
        self._write_file(all_data)

    def _remove(self, name):
        all_data = self._read()
        all_data.pop(name, None)
        self._write_file(all_data)


def get_store(backend: Optional[str] = None, path: Optional[str] = None) -> ClusterStore:
    """Build the store selected by configuration.

    Args:
        backend: 'file' or 'memory' (default: Config.STORE_BACKEND)
        path: JSON file for the file store (default: Config.STORE_PATH)
    """
    backend = (backend or Config.STORE_BACKEND).lower()
    if backend == "memory":
        logger.info("Using in-memory cluster store")
        return MemoryStore()
    if backend == "file":
        path = path or Config.STORE_PATH
        logger.info(f"Using file cluster store at {path}")
        return FileStore(path)
    raise ValueError(f"Unknown store backend: {backend}")
