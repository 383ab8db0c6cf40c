"""Iteration over stored key/value pairs that records the mutations made to values."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from typing import Any, Generic, TypeVar

import cbor2

from amaru.common import decode

T = TypeVar("T")

_DECODE_ERRORS = (ValueError, cbor2.CBORDecodeError)


class BorrowableProxy(Generic[T]):
    """Wrap an item and run a hook with its final value once it has been mutably borrowed.

    The hook runs at most once, when the proxy is closed, and only if ``borrow_mut``
    or ``set`` was called.
    """

    def __init__(self, item: T, hook: Callable[[T], None]) -> None:
        self._item = item
        self._hook: Callable[[T], None] | None = hook
        self._borrowed = False

    def borrow(self) -> T:
        """Read-only access to the item."""
        return self._item

    def borrow_mut(self) -> T:
        """Access to the item for mutation in place."""
        self._borrowed = True
        return self._item

    def set(self, value: T) -> None:
        """Replace the item with ``value``."""
        self._borrowed = True
        self._item = value

    def close(self) -> None:
        """Fire the hook if the item was mutably borrowed."""
        hook, self._hook = self._hook, None
        if self._borrowed and hook is not None:
            hook(self._item)

    def __enter__(self) -> BorrowableProxy[T]:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class KeyValueIterator(Generic[T]):
    """Decode raw ``(key, value)`` pairs and collect updates made through yielded proxies."""

    def __init__(
        self,
        inner: Iterable[tuple[bytes, bytes]],
        prefix_len: int,
        decode_key: Callable[[bytes], Any] = decode,
        decode_value: Callable[[bytes], Any] = decode,
    ) -> None:
        self._inner = iter(inner)
        self._prefix_len = prefix_len
        self._decode_key = decode_key
        self._decode_value = decode_value
        self._updates: list[tuple[bytes, Any]] = []
        self._proxies: list[BorrowableProxy[Any]] = []
        self._consumed = False

    def __iter__(self) -> KeyValueIterator[T]:
        return self

    def __next__(self) -> tuple[Any, BorrowableProxy[Any]]:
        """Return the next decoded key and a proxy over its value.

        Decoding failures are raised; the underlying iterator has still moved on.
        """
        if self._consumed:
            raise StopIteration
        raw_key, raw_value = next(self._inner)
        key = self._decode_key(bytes(raw_key)[self._prefix_len :])
        original = self._decode_value(bytes(raw_value))
        stored_key = bytes(raw_key)

        def on_update(new: Any) -> None:
            self._updates.append((stored_key, new))

        proxy = BorrowableProxy(original, on_update)
        self._proxies.append(proxy)
        return key, proxy

    def as_iter_borrow(self) -> Iterator[tuple[Any, BorrowableProxy[Any]]]:
        """Yield every entry that decodes successfully, skipping the others."""
        while True:
            try:
                yield next(self)
            except StopIteration:
                return
            except _DECODE_ERRORS:
                continue

    def into_iter_updates(self) -> Iterator[tuple[bytes, Any]]:
        """Close all proxies and return the recorded updates, in the order they happened.

        A value of ``None`` means the entry is to be deleted.
        """
        if self._consumed:
            raise RuntimeError("updates have already been taken from this iterator")
        for proxy in self._proxies:
            proxy.close()
        self._consumed = True
        self._proxies.clear()
        updates, self._updates = self._updates, []
        return iter(updates)


def new(
    inner: Iterable[tuple[bytes, bytes]],
    prefix_len: int,
    decode_key: Callable[[bytes], Any] = decode,
    decode_value: Callable[[bytes], Any] = decode,
) -> KeyValueIterator[Any]:
    """Create a :class:`KeyValueIterator` over raw ``(key, value)`` pairs."""
    return KeyValueIterator(inner, prefix_len, decode_key, decode_value)