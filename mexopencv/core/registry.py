"""Handle-indexed object registry.

The host cannot hold references to native objects, so every stateful wrapped
class keeps its live objects in a `HandleRegistry` and hands the host a small
integer handle instead. Handles start at 1, grow monotonically and are never
reused, even after the object they named has been deleted.
"""

import logging
import threading
from typing import Generic, NewType, TypeVar

from mexopencv.core.errors import InvalidArgument

Handle = NewType("Handle", int)

T = TypeVar("T")


class HandleRegistry(Generic[T]):
    """Table mapping handles to the live objects of one wrapped class.

    Attributes:
        name: Name of the wrapped class, used in log messages.
        last_id: The most recently issued handle, 0 before the first insert.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.last_id = 0
        self._objects: dict[int, T] = {}
        self._lock = threading.Lock()

    def insert(self, obj: T) -> Handle:
        """Register an object and return its new handle."""
        if obj is None:
            raise InvalidArgument(f"Cannot register an empty {self.name} object")
        with self._lock:
            self.last_id += 1
            handle = Handle(self.last_id)
            self._objects[handle] = obj
        logging.debug(f"{self.name}: registered object id={handle}")
        return handle

    def get(self, handle: int) -> T:
        """Return the object registered under ``handle``.

        Raises:
            InvalidArgument: If the handle was never issued or has been removed.
        """
        with self._lock:
            try:
                return self._objects[handle]
            except KeyError:
                raise InvalidArgument(f"Object not found id={handle}") from None

    def remove(self, handle: int) -> None:
        """Remove the object registered under ``handle``.

        Raises:
            InvalidArgument: If the handle was never issued or has already
                been removed.
        """
        with self._lock:
            if handle not in self._objects:
                raise InvalidArgument(f"Object not found id={handle}")
            del self._objects[handle]
        logging.debug(f"{self.name}: removed object id={handle}")

    def handles(self) -> list[Handle]:
        with self._lock:
            return [Handle(h) for h in self._objects]

    def __contains__(self, handle: object) -> bool:
        with self._lock:
            return handle in self._objects

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)
