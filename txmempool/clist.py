"""A thread-safe doubly linked list that can be traversed concurrently.

Readers may walk the list while writers push and remove elements. Removed
elements cannot be added back; after removal they should be detached
(``detach_prev``/``detach_next``) so that they do not keep neighbours alive.
"""

from __future__ import annotations

import sys
import threading
from typing import Any, Iterator, Optional

MAX_LENGTH = sys.maxsize


class CListError(RuntimeError):
    """Raised when the list or one of its elements is misused."""


class CElement:
    """An element of a :class:`CList`. Traversal from an element is thread-safe."""

    def __init__(self, value: Any) -> None:
        self.value = value
        self._lock = threading.Lock()
        self._prev: Optional[CElement] = None
        self._next: Optional[CElement] = None
        self._prev_event = threading.Event()
        self._next_event = threading.Event()
        self._removed = False

    def __repr__(self) -> str:
        return f"CElement({self.value!r})"

    def next_wait(self) -> Optional[CElement]:
        """Block until there is a next element; return None if this tail was removed."""
        while True:
            with self._lock:
                nxt = self._next
                event = self._next_event
                removed = self._removed
            if nxt is not None or removed:
                return nxt
            event.wait()

    def prev_wait(self) -> Optional[CElement]:
        """Block until there is a previous element; return None if this head was removed."""
        while True:
            with self._lock:
                prev = self._prev
                event = self._prev_event
                removed = self._removed
            if prev is not None or removed:
                return prev
            event.wait()

    def next_wait_event(self) -> threading.Event:
        """Return an event that is set once the next element is not None."""
        with self._lock:
            return self._next_event

    def prev_wait_event(self) -> threading.Event:
        """Return an event that is set once the previous element is not None."""
        with self._lock:
            return self._prev_event

    def next(self) -> Optional[CElement]:
        """Return the next element without blocking."""
        with self._lock:
            return self._next

    def prev(self) -> Optional[CElement]:
        """Return the previous element without blocking."""
        with self._lock:
            return self._prev

    def removed(self) -> bool:
        """Report whether the element has been removed from its list."""
        with self._lock:
            return self._removed

    def detach_next(self) -> None:
        """Drop the link to the next element; only allowed after removal."""
        with self._lock:
            if not self._removed:
                raise CListError("detach_next() must be called after remove(e)")
            self._next = None

    def detach_prev(self) -> None:
        """Drop the link to the previous element; only allowed after removal."""
        with self._lock:
            if not self._removed:
                raise CListError("detach_prev() must be called after remove(e)")
            self._prev = None

    def set_next(self, new_next: Optional[CElement]) -> None:
        """Link ``new_next`` after this element, waking any waiters."""
        with self._lock:
            old_next = self._next
            self._next = new_next
            if old_next is not None and new_next is None:
                self._next_event = threading.Event()
            if old_next is None and new_next is not None:
                self._next_event.set()

    def set_prev(self, new_prev: Optional[CElement]) -> None:
        """Link ``new_prev`` before this element, waking any waiters."""
        with self._lock:
            old_prev = self._prev
            self._prev = new_prev
            if old_prev is not None and new_prev is None:
                self._prev_event = threading.Event()
            if old_prev is None and new_prev is not None:
                self._prev_event.set()

    def set_removed(self) -> None:
        """Mark the element removed and wake waiters in both directions."""
        with self._lock:
            self._removed = True
            if self._prev is None:
                self._prev_event.set()
            if self._next is None:
                self._next_event.set()


class CList:
    """A thread-safe linked list with a bounded length."""

    def __init__(self, max_length: int = MAX_LENGTH) -> None:
        self._lock = threading.Lock()
        self._max_length = max_length
        self._event = threading.Event()
        self._head: Optional[CElement] = None
        self._tail: Optional[CElement] = None
        self._len = 0

    def __len__(self) -> int:
        with self._lock:
            return self._len

    def __iter__(self) -> Iterator[CElement]:
        """Iterate over the elements from front to back."""
        element = self.front()
        while element is not None:
            yield element
            element = element.next()

    def front(self) -> Optional[CElement]:
        with self._lock:
            return self._head

    def front_wait(self) -> CElement:
        """Block until the list has a first element and return it."""
        while True:
            with self._lock:
                head = self._head
                event = self._event
            if head is not None:
                return head
            event.wait()

    def back(self) -> Optional[CElement]:
        with self._lock:
            return self._tail

    def back_wait(self) -> CElement:
        """Block until the list has a last element and return it."""
        while True:
            with self._lock:
                tail = self._tail
                event = self._event
            if tail is not None:
                return tail
            event.wait()

    def wait_event(self) -> threading.Event:
        """Return an event that is set once the list is not empty."""
        with self._lock:
            return self._event

    def push_back(self, value: Any) -> CElement:
        """Append ``value`` and return its element; raise if the list is full."""
        with self._lock:
            if self._len >= self._max_length:
                raise CListError(
                    f"clist: maximum length list reached {self._max_length}"
                )
            element = CElement(value)
            if self._len == 0:
                self._event.set()
            self._len += 1
            if self._tail is None:
                self._head = element
                self._tail = element
            else:
                element.set_prev(self._tail)
                self._tail.set_next(element)
                self._tail = element
            return element

    def remove(self, element: CElement) -> Any:
        """Unlink ``element`` from the list and return its value."""
        with self._lock:
            prev = element.prev()
            nxt = element.next()

            if self._head is None or self._tail is None:
                raise CListError("remove(e) on empty CList")
            if prev is None and self._head is not element:
                raise CListError("remove(e) with false head")
            if nxt is None and self._tail is not element:
                raise CListError("remove(e) with false tail")

            if self._len == 1:
                self._event = threading.Event()
            self._len -= 1

            if prev is None:
                self._head = nxt
            else:
                prev.set_next(nxt)
            if nxt is None:
                self._tail = prev
            else:
                nxt.set_prev(prev)

            element.set_removed()
            return element.value