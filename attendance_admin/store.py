"""Remote tree store: Firebase Realtime Database adapter and an in-process tree.

Every tree the service touches is addressed by a slash-separated path
(``lecturecount/CS/3/Maths``). Reads of absent paths return ``None``; writes
overwrite the whole value at the path; writing ``None`` deletes it.
Subscriptions always deliver the full current value of the watched path,
never a partial patch.
"""
from __future__ import annotations

import copy
import itertools
import logging
import threading
import time
from typing import Any, Callable, Optional

from firebase_admin import db as firebase_db
from firebase_admin.exceptions import FirebaseError

from attendance_admin.errors import StoreError, ValidationFailed

logger = logging.getLogger(__name__)

# Characters the Realtime Database refuses in keys.
FORBIDDEN_KEY_CHARS = frozenset(".$#[]/")


def key_segment(value: Any) -> str:
    """Validate a user-supplied path segment such as a branch name or subject."""
    text = "" if value is None else str(value)
    if not text.strip():
        raise ValidationFailed("Branch, semester and subject names must not be empty")
    bad = FORBIDDEN_KEY_CHARS.intersection(text)
    if bad:
        raise ValidationFailed(
            f"'{text}' contains characters that cannot be used as a key: {' '.join(sorted(bad))}"
        )
    return text


def child_path(root: str, *segments: Any) -> str:
    return "/".join([root, *(key_segment(s) for s in segments)])


def as_mapping(value: Any) -> dict:
    """Normalise a subtree to a dict.

    The database hands back JSON arrays for objects whose keys are dense
    integers (``fingerprints/1..n``, ``semesters``), with nulls for holes.
    """
    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        return {str(i): item for i, item in enumerate(value) if item is not None}
    return {}


def as_list(value: Any) -> list:
    if isinstance(value, list):
        return [item for item in value if item is not None]
    if isinstance(value, dict):
        return list(value.values())
    return []


class Subscription:
    """Cancellation handle returned by ``TreeStore.subscribe``."""

    def __init__(self, close: Callable[[], None]):
        self._close = close
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._close()


class TreeStore:
    """Hierarchical key-value store reachable by path."""

    def get(self, path: str) -> Any:
        raise NotImplementedError

    def set(self, path: str, value: Any) -> None:
        raise NotImplementedError

    def push(self, path: str, value: Any) -> str:
        """Write ``value`` under a new store-generated child key and return the key."""
        raise NotImplementedError

    def delete(self, path: str) -> None:
        raise NotImplementedError

    def transaction(self, path: str, update: Callable[[Any], Any]) -> Any:
        """Atomically replace the value at ``path`` with ``update(current)``."""
        raise NotImplementedError

    def subscribe(self, path: str, callback: Callable[[Any], None]) -> Subscription:
        raise NotImplementedError


class FirebaseTreeStore(TreeStore):
    """``TreeStore`` backed by ``firebase_admin.db``."""

    def __init__(self, app=None):
        self._app = app

    def _ref(self, path: str):
        return firebase_db.reference("/" + path.strip("/"), app=self._app)

    def _call(self, action: str, path: str, fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except FirebaseError as e:
            logger.error(f"Firebase {action} failed at '{path}': {e}")
            raise StoreError(f"Could not {action} '{path}'. Please try again.") from e

    def get(self, path: str) -> Any:
        return self._call("read", path, lambda: self._ref(path).get())

    def set(self, path: str, value: Any) -> None:
        self._call("write", path, lambda: self._ref(path).set(value))

    def push(self, path: str, value: Any) -> str:
        return self._call("write", path, lambda: self._ref(path).push(value).key)

    def delete(self, path: str) -> None:
        self._call("delete", path, lambda: self._ref(path).delete())

    def transaction(self, path: str, update: Callable[[Any], Any]) -> Any:
        return self._call("update", path, lambda: self._ref(path).transaction(update))

    def subscribe(self, path: str, callback: Callable[[Any], None]) -> Subscription:
        ref = self._ref(path)

        def on_event(event) -> None:
            # Events carry only the changed child; re-read so the consumer gets
            # the whole subtree.
            try:
                snapshot = ref.get()
            except FirebaseError as e:
                logger.error(f"Refreshing subscription at '{path}' failed: {e}")
                return
            callback(snapshot)

        registration = self._call("subscribe to", path, lambda: ref.listen(on_event))
        return Subscription(registration.close)


def _prune(value: Any) -> Any:
    """Drop nulls and empty objects the way the database does on write."""
    if isinstance(value, dict):
        out = {}
        for key, item in value.items():
            item = _prune(item)
            if item is not None:
                out[str(key)] = item
        return out or None
    if isinstance(value, list):
        items = [_prune(item) for item in value]
        return items if any(item is not None for item in items) else None
    return value


def _related(watched: str, changed: str) -> bool:
    if not watched or not changed or watched == changed:
        return True
    return changed.startswith(watched + "/") or watched.startswith(changed + "/")


class MemoryTreeStore(TreeStore):
    """In-process tree with the same read/write/subscribe semantics."""

    def __init__(self, data: Optional[dict] = None):
        self._root: dict = (_prune(copy.deepcopy(data)) or {}) if data else {}
        self._lock = threading.RLock()
        self._listeners: dict[int, tuple[str, Callable[[Any], None]]] = {}
        self._tokens = itertools.count()
        self._push_seq = itertools.count()

    @staticmethod
    def _parts(path: str) -> list[str]:
        return [p for p in path.strip("/").split("/") if p]

    def get(self, path: str) -> Any:
        with self._lock:
            node: Any = self._root
            for part in self._parts(path):
                if isinstance(node, list) and part.isdigit() and int(part) < len(node):
                    node = node[int(part)]
                elif isinstance(node, dict) and part in node:
                    node = node[part]
                else:
                    return None
            if node == {}:
                return None
            return copy.deepcopy(node)

    def _write(self, parts: list[str], value: Any) -> None:
        value = _prune(copy.deepcopy(value))
        if not parts:
            self._root = value if isinstance(value, dict) else {}
            return
        node = self._root
        trail = []
        for part in parts[:-1]:
            child = node.get(part)
            if isinstance(child, list):
                child = as_mapping(child)
                node[part] = child
            if not isinstance(child, dict):
                if value is None:
                    return
                child = {}
                node[part] = child
            trail.append((node, part))
            node = child
        if value is None:
            node.pop(parts[-1], None)
        else:
            node[parts[-1]] = value
        for parent, part in reversed(trail):
            if parent[part]:
                break
            del parent[part]

    def _notify(self, path: str) -> None:
        changed = "/".join(self._parts(path))
        with self._lock:
            listeners = list(self._listeners.values())
        for watched, callback in listeners:
            if _related(watched, changed):
                callback(self.get(watched))

    def set(self, path: str, value: Any) -> None:
        with self._lock:
            self._write(self._parts(path), value)
        self._notify(path)

    def push(self, path: str, value: Any) -> str:
        key = f"-M{int(time.time() * 1000):013d}{next(self._push_seq):06d}"
        self.set(f"{path.strip('/')}/{key}", value)
        return key

    def delete(self, path: str) -> None:
        self.set(path, None)

    def transaction(self, path: str, update: Callable[[Any], Any]) -> Any:
        with self._lock:
            new_value = update(self.get(path))
            self._write(self._parts(path), new_value)
        self._notify(path)
        return new_value

    def subscribe(self, path: str, callback: Callable[[Any], None]) -> Subscription:
        token = next(self._tokens)
        watched = "/".join(self._parts(path))
        with self._lock:
            self._listeners[token] = (watched, callback)
        callback(self.get(watched))
        return Subscription(lambda: self._listeners.pop(token, None))


class LiveSnapshot:
    """Consumer-owned current value of a subscribed path.

    Each delivery is parsed and replaces ``value`` wholesale.
    """

    def __init__(self, store: TreeStore, path: str, parse: Callable[[Any], Any] = as_mapping):
        self.path = path
        self._parse = parse
        self.value = parse(None)
        self.deliveries = 0
        self._subscription = store.subscribe(path, self._replace)

    def _replace(self, raw: Any) -> None:
        self.value = self._parse(raw)
        self.deliveries += 1

    def close(self) -> None:
        self._subscription.close()

    def __enter__(self) -> "LiveSnapshot":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
