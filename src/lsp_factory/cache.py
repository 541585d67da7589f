"""
Memoized pipeline steps.

A Step runs its work at most once, however many consumers await it or
subscribe to its progress. Progress items are buffered so that a late
subscriber sees them replayed in their original order before any live ones.
"""

import asyncio
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    Generic,
    Hashable,
    Iterator,
    List,
    Optional,
    TypeVar,
)

T = TypeVar("T")

Emit = Callable[[Any], None]
StepWork = Callable[[Emit], Awaitable[T]]


class ReplayBuffer:
    """Append-only log that any number of async readers can follow from the start."""

    def __init__(self):
        self._items: List[Any] = []
        self._closed = False
        self._changed = asyncio.Event()

    def __len__(self) -> int:
        return len(self._items)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def items(self) -> List[Any]:
        return list(self._items)

    def append(self, item: Any) -> None:
        if self._closed:
            raise RuntimeError("Cannot append to a closed ReplayBuffer")
        self._items.append(item)
        self._notify()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._notify()

    def _notify(self) -> None:
        self._changed.set()
        self._changed = asyncio.Event()

    async def follow(self) -> AsyncIterator[Any]:
        """Yield every buffered item, then live ones, until the buffer is closed."""
        index = 0
        while True:
            while index < len(self._items):
                yield self._items[index]
                index += 1
            if self._closed:
                return
            await self._changed.wait()


class Step(Generic[T]):
    """A unit of async work executed at most once, with replayable progress."""

    def __init__(
        self,
        key: Hashable,
        work: StepWork,
        listener: Optional[Callable[[Any], None]] = None,
    ):
        self.key = key
        self._work = work
        self._listener = listener
        self._task: Optional["asyncio.Task[T]"] = None
        self.progress = ReplayBuffer()

    @property
    def started(self) -> bool:
        return self._task is not None

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def _emit(self, item: Any) -> None:
        self.progress.append(item)
        if self._listener is not None:
            self._listener(item)

    async def _run(self) -> T:
        try:
            return await self._work(self._emit)
        finally:
            self.progress.close()

    def start(self) -> "asyncio.Task[T]":
        """Start the work if it has not been started yet; return its task."""
        if self._task is None:
            self._task = asyncio.ensure_future(self._run())
        return self._task

    async def result(self) -> T:
        """Wait for the terminal value, raising the work's exception on failure."""
        return await asyncio.shield(self.start())

    async def events(self) -> AsyncIterator[Any]:
        """
        Yield progress items in emission order, then finish.

        If the work failed, its exception is raised after the replayed items.
        """
        self.start()
        async for item in self.progress.follow():
            yield item
        await self.result()


class StepCache:
    """Per-run registry of steps keyed by step identity."""

    def __init__(self):
        self._steps: Dict[Hashable, Step] = {}

    def __contains__(self, key: Hashable) -> bool:
        return key in self._steps

    def __iter__(self) -> Iterator[Step]:
        return iter(list(self._steps.values()))

    def __getitem__(self, key: Hashable) -> Step:
        return self._steps[key]

    def get_or_create(
        self,
        key: Hashable,
        work: StepWork,
        listener: Optional[Callable[[Any], None]] = None,
    ) -> Step:
        """Return the step registered under key, creating it from work on first use."""
        if key not in self._steps:
            self._steps[key] = Step(key, work, listener)
        return self._steps[key]
