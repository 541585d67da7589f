"""
Dependency-ordered execution of pipeline steps.

Nodes whose dependencies have all succeeded are started together; a node
never starts before every one of its dependencies has produced a result.
After the first failure no further node is started, already running nodes
are left to finish, and their results are not used.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from .cache import Emit, ReplayBuffer, Step, StepCache
from .types import DeploymentEvent, DeploymentStatus, DeploymentType

logger = logging.getLogger(__name__)

NodeWork = Callable[[Dict[str, Any], Emit], Awaitable[Any]]


@dataclass(frozen=True)
class Node:
    name: str
    work: NodeWork
    depends_on: Tuple[str, ...] = ()
    contract_name: Optional[str] = None


class TaskGraph:
    """A small scheduler over memoized steps with a shared event log."""

    def __init__(self, cache: Optional[StepCache] = None):
        self._cache = cache if cache is not None else StepCache()
        self._nodes: Dict[str, Node] = {}
        self._results: Dict[str, Any] = {}
        self.events = ReplayBuffer()
        self.failure: Optional[BaseException] = None

    def __contains__(self, name: str) -> bool:
        return name in self._nodes

    @property
    def results(self) -> Dict[str, Any]:
        return dict(self._results)

    def add(
        self,
        name: str,
        work: NodeWork,
        depends_on: Sequence[str] = (),
        contract_name: Optional[str] = None,
    ) -> str:
        """
        Register a node.

        Dependencies must already be registered, which keeps the graph acyclic.

        Returns:
            The node name

        Raises:
            ValueError: If the name is taken or a dependency is unknown
        """
        if name in self._nodes:
            raise ValueError(f"Duplicate node '{name}'")
        for dependency in depends_on:
            if dependency not in self._nodes:
                raise ValueError(f"Node '{name}' depends on unknown node '{dependency}'")
        self._nodes[name] = Node(name, work, tuple(depends_on), contract_name)
        return name

    def step(self, name: str) -> Step:
        """The memoized step backing a node."""
        node = self._nodes[name]

        async def run_node(emit: Emit) -> Any:
            inputs = {dependency: self._results[dependency] for dependency in node.depends_on}
            return await node.work(inputs, emit)

        return self._cache.get_or_create(("node", name), run_node, listener=self._publish)

    def _publish(self, event: DeploymentEvent) -> None:
        # nothing is reported after the terminal ERROR event
        if self.events.closed:
            return
        self.events.append(event)
        if event.status is DeploymentStatus.ERROR:
            self.events.close()

    def _fail(self, name: str, error: BaseException) -> None:
        if self.failure is not None:
            return
        self.failure = error
        logger.error(f"Step '{name}' failed: {error}")
        if not self.events.closed:
            node = self._nodes[name]
            self.events.append(
                DeploymentEvent(
                    type=DeploymentType.TRANSACTION,
                    contract_name=node.contract_name or name,
                    status=DeploymentStatus.ERROR,
                    error=error,
                )
            )
            self.events.close()

    def _ready(self, pending: Dict[str, Node]) -> List[str]:
        return [
            name
            for name, node in pending.items()
            if all(dependency in self._results for dependency in node.depends_on)
        ]

    async def run(self) -> Dict[str, Any]:
        """
        Execute every node in dependency order.

        Returns:
            Mapping of node name -> result

        Raises:
            The first node failure, once all started nodes have finished
        """
        pending = dict(self._nodes)
        running: Dict[asyncio.Future, str] = {}

        while pending or running:
            if self.failure is None:
                for name in self._ready(pending):
                    del pending[name]
                    running[self.step(name).start()] = name

            if not running:
                break

            done, _ = await asyncio.wait(running.keys(), return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                name = running.pop(task)
                if task.cancelled():
                    self._fail(name, asyncio.CancelledError(f"Step '{name}' was cancelled"))
                elif task.exception() is not None:
                    self._fail(name, task.exception())
                elif self.failure is None:
                    self._results[name] = task.result()

        if self.failure is not None:
            raise self.failure

        self.events.close()
        return self.results
