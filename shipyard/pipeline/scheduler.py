"""A small DAG scheduler for release runs.

Nodes are named tasks returning a ``Result``. Two kinds of edges:

- ``needs``: the dependency must have *succeeded*; otherwise the node is
  skipped and records which dependency blocked it.
- ``after``: the dependency must have *finished*, whatever its outcome. This
  is how the publish join waits for every leg without being blocked by a
  failed one.

Ready nodes run on a thread pool. A node that raises is recorded as failed;
siblings keep running. There are no timeouts and no cancellation.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Literal

from shipyard.core.result import Err, Ok, Result

__all__ = ["GraphError", "NodeOutcome", "Task", "TaskGraph"]

NodeStatus = Literal["success", "failed", "skipped"]


class GraphError(Exception):
    """The graph definition itself is invalid (unknown dependency, cycle)."""


@dataclass(frozen=True, slots=True)
class NodeOutcome:
    name: str
    status: NodeStatus
    value: object = None
    # failure value returned by the task, or the exception it raised
    error: object = None
    blocked_by: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


TaskFn = Callable[[Mapping[str, NodeOutcome]], Result[object, object]]


@dataclass(frozen=True, slots=True)
class Task:
    name: str
    run: TaskFn
    needs: tuple[str, ...] = ()
    after: tuple[str, ...] = ()

    @property
    def dependencies(self) -> tuple[str, ...]:
        return self.needs + self.after


class TaskGraph:
    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def add(
        self,
        name: str,
        run: TaskFn,
        *,
        needs: Sequence[str] = (),
        after: Sequence[str] = (),
    ) -> None:
        if name in self._tasks:
            raise GraphError(f"duplicate node: {name}")
        self._tasks[name] = Task(name=name, run=run, needs=tuple(needs), after=tuple(after))

    def order(self) -> list[str]:
        """Topological order (insertion order among independent nodes).

        Raises:
            GraphError: On unknown dependencies or cycles.
        """
        for task in self._tasks.values():
            for dep in task.dependencies:
                if dep not in self._tasks:
                    raise GraphError(f"{task.name} depends on unknown node {dep}")

        remaining = {name: set(task.dependencies) for name, task in self._tasks.items()}
        ordered: list[str] = []
        while remaining:
            ready = [name for name, deps in remaining.items() if not deps]
            if not ready:
                raise GraphError(f"cycle between: {', '.join(sorted(remaining))}")
            for name in ready:
                ordered.append(name)
                del remaining[name]
            for deps in remaining.values():
                deps.difference_update(ready)
        return ordered

    def run(self, *, max_workers: int = 4) -> dict[str, NodeOutcome]:
        """Run every node once; returns outcomes keyed by node name."""
        order = self.order()
        outcomes: dict[str, NodeOutcome] = {}
        pending = list(order)
        running: dict[Future[NodeOutcome], str] = {}

        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="shipyard") as pool:
            while pending or running:
                self._dispatch(pool, pending, running, outcomes)
                if not running:
                    continue
                done, _ = wait(running, return_when=FIRST_COMPLETED)
                for future in done:
                    name = running.pop(future)
                    outcomes[name] = future.result()

        return {name: outcomes[name] for name in order}

    def _dispatch(
        self,
        pool: ThreadPoolExecutor,
        pending: list[str],
        running: dict[Future[NodeOutcome], str],
        outcomes: dict[str, NodeOutcome],
    ) -> None:
        # Skips can unblock further skips, so sweep until nothing changes.
        changed = True
        while changed:
            changed = False
            for name in list(pending):
                task = self._tasks[name]
                if not all(dep in outcomes for dep in task.dependencies):
                    continue

                pending.remove(name)
                blocker = next((dep for dep in task.needs if not outcomes[dep].ok), None)
                if blocker is not None:
                    outcomes[name] = NodeOutcome(name=name, status="skipped", blocked_by=blocker)
                    changed = True
                    continue

                inputs = {dep: outcomes[dep] for dep in task.dependencies}
                running[pool.submit(_invoke, task, inputs)] = name


def _invoke(task: Task, inputs: Mapping[str, NodeOutcome]) -> NodeOutcome:
    try:
        result = task.run(inputs)
    except Exception as e:  # contained so sibling nodes keep running
        return NodeOutcome(name=task.name, status="failed", error=e)

    match result:
        case Ok(value=value):
            return NodeOutcome(name=task.name, status="success", value=value)
        case Err(error=error):
            return NodeOutcome(name=task.name, status="failed", error=error)
    error = TypeError(f"{task.name} returned a non-Result: {result!r}")
    return NodeOutcome(name=task.name, status="failed", error=error)
