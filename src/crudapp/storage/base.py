"""Base storage interface.

Defines the abstract interface every persistence backend implements, and the
lazy iterator returned when listing a user's posts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import TracebackType

from crudapp.core.record import Record


class RecordIterator(ABC):
    """Lazy, forward-only, single-pass sequence of records.

    The raw protocol is ``next()`` / ``get()`` / ``close()``::

        it = await storage.read_all(user_id)
        try:
            while await it.next():
                record = it.get()
        finally:
            await it.close()

    The iterator is also an async context manager and an async iterable, so
    the usual form is::

        async with await storage.read_all(user_id) as records:
            async for record in records:
                ...

    Iterators are not restartable; call ``read_all`` again to iterate again.
    """

    _closed: bool = False

    @abstractmethod
    async def next(self) -> bool:
        """Advance to the next element.

        Returns:
            True if an element is available for ``get()``, False once the
            sequence is exhausted.
        """
        ...

    @abstractmethod
    def get(self) -> Record:
        """Decode the current element.

        Raises:
            BackendError: If the element cannot be decoded
            RuntimeError: If called without a preceding successful ``next()``
        """
        ...

    @abstractmethod
    async def _release(self) -> None:
        """Release backend resources (cursor, connection)."""
        ...

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Release backend resources. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        await self._release()

    async def __aenter__(self) -> RecordIterator:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def __aiter__(self) -> RecordIterator:
        return self

    async def __anext__(self) -> Record:
        if self._closed or not await self.next():
            raise StopAsyncIteration
        return self.get()


class Storage(ABC):
    """Abstract base class for post storage backends."""

    @abstractmethod
    async def create(self, user_id: str, data: str) -> Record:
        """Create a new post.

        Allocates a post ID and sets created_at = updated_at = now.

        Returns:
            The persisted record

        Raises:
            BackendError: On backend failure
        """
        ...

    @abstractmethod
    async def read(self, user_id: str, post_id: str) -> Record:
        """Read a post.

        Raises:
            PostNotFoundError: If no post matches
            BackendError: On backend failure
        """
        ...

    @abstractmethod
    async def read_all(self, user_id: str) -> RecordIterator:
        """List every post owned by *user_id*, in backend-defined order.

        A user with no posts yields an empty iterator, not an error.
        """
        ...

    @abstractmethod
    async def update(self, user_id: str, post_id: str, data: str) -> Record:
        """Replace the data of an existing post.

        updated_at moves strictly forward; created_at is preserved.

        Raises:
            PostNotFoundError: If no post matches
            BackendError: On backend failure
        """
        ...

    @abstractmethod
    async def delete(self, user_id: str, post_id: str) -> None:
        """Delete a post. Deleting a missing post is not an error."""
        ...

    async def setup(self) -> None:
        """Prepare the backend (tables, indexes). No-op by default."""
        return None

    async def close(self) -> None:
        """Release backend connections. No-op by default."""
        return None

    async def health_check(self) -> bool:
        """Check backend connectivity."""
        return True
