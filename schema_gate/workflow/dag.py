"""
Lightweight workflow host.

Runs steps as a DAG in topological order, merging each step's output into a
shared context. Steps may carry a ``when`` predicate; a step whose predicate
is false is skipped along with everything downstream of it, which is how a
workflow branches on an earlier step's verdict (for example ``isValid``).
A step that raises is marked failed and its dependents are skipped.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)

StepFn = Callable[[dict[str, Any]], "dict[str, Any] | None"]
Condition = Callable[[dict[str, Any]], bool]


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class TaskNode:
    """A single step inside a workflow."""

    name: str
    execute_fn: StepFn
    depends_on: list[str] = field(default_factory=list)
    when: Condition | None = None
    status: TaskStatus = TaskStatus.PENDING
    result: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    duration_ms: float = 0.0


class DAG:
    """
    A directed acyclic graph of TaskNodes.

    Usage:
        dag = DAG("check_payload")
        dag.add_task("validate", validate_step)
        dag.add_task("accept", accept_fn, depends_on=["validate"],
                     when=lambda ctx: ctx["jsonSchema"]["isValid"])
        dag.add_task("reject", reject_fn, depends_on=["validate"],
                     when=lambda ctx: not ctx["jsonSchema"]["isValid"])
        summary = dag.run(initial_context={"data": ..., "schema": ...})
    """

    def __init__(self, name: str):
        self.name = name
        self.tasks: dict[str, TaskNode] = {}

    def add_task(
        self,
        name: str,
        execute_fn: StepFn,
        depends_on: list[str] | None = None,
        when: Condition | None = None,
    ) -> DAG:
        if name in self.tasks:
            raise ValueError(f"Duplicate task name: {name}")
        self.tasks[name] = TaskNode(
            name=name, execute_fn=execute_fn, depends_on=depends_on or [], when=when
        )
        return self  # allow chaining

    def _topological_sort(self) -> list[str]:
        """Kahn's algorithm – returns tasks in dependency order."""
        in_degree: dict[str, int] = {name: 0 for name in self.tasks}
        for task in self.tasks.values():
            for dep in task.depends_on:
                if dep not in self.tasks:
                    raise ValueError(
                        f"Task '{task.name}' depends on unknown task '{dep}'"
                    )
                in_degree[task.name] += 1

        queue = [name for name, deg in in_degree.items() if deg == 0]
        order: list[str] = []

        while queue:
            current = queue.pop(0)
            order.append(current)
            for name, task in self.tasks.items():
                if current in task.depends_on:
                    in_degree[name] -= 1
                    if in_degree[name] == 0:
                        queue.append(name)

        if len(order) != len(self.tasks):
            raise ValueError("Cycle detected in DAG")
        return order

    def _reset(self) -> None:
        """Clear state left on the nodes by a previous run."""
        for task in self.tasks.values():
            task.status = TaskStatus.PENDING
            task.result = {}
            task.error = None
            task.duration_ms = 0.0

    def _skip(self, task: TaskNode, summary: dict[str, Any], reason: str) -> None:
        task.status = TaskStatus.SKIPPED
        summary["tasks"][task.name] = {"status": TaskStatus.SKIPPED.value}
        logger.info("Skipping '%s' – %s", task.name, reason)

    def run(self, initial_context: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Execute all tasks in topological order.
        Each task receives the context merged with its upstream results.
        """
        execution_order = self._topological_sort()
        self._reset()
        context = dict(initial_context or {})
        summary: dict[str, Any] = {"pipeline": self.name, "tasks": {}}

        logger.info("Starting workflow '%s' with %d tasks", self.name, len(self.tasks))

        for task_name in execution_order:
            task = self.tasks[task_name]

            upstream = [self.tasks[dep].status for dep in task.depends_on]
            if TaskStatus.FAILED in upstream:
                logger.warning("Upstream of '%s' failed", task_name)
                self._skip(task, summary, "upstream dependency failed")
                continue
            if TaskStatus.SKIPPED in upstream:
                self._skip(task, summary, "upstream branch not taken")
                continue

            for dep in task.depends_on:
                context.update(self.tasks[dep].result)

            if task.when is not None and not task.when(context):
                self._skip(task, summary, "condition not met")
                continue

            task.status = TaskStatus.RUNNING
            logger.info("Running task '%s'", task_name)
            start = time.perf_counter()
            try:
                task.result = task.execute_fn(context) or {}
                task.status = TaskStatus.SUCCESS
            except Exception as exc:
                task.status = TaskStatus.FAILED
                task.error = str(exc)
                logger.error("Task '%s' failed: %s", task_name, exc)
            finally:
                task.duration_ms = (time.perf_counter() - start) * 1000

            summary["tasks"][task_name] = {
                "status": task.status.value,
                "duration_ms": round(task.duration_ms, 2),
                "error": task.error,
            }

        any_failed = any(t.status == TaskStatus.FAILED for t in self.tasks.values())
        summary["status"] = "failed" if any_failed else "completed"
        logger.info("Workflow '%s' finished – %s", self.name, summary["status"])
        return summary

    def to_dict(self) -> dict[str, Any]:
        """Serialize the workflow definition."""
        return {
            "name": self.name,
            "tasks": {
                name: {
                    "depends_on": task.depends_on,
                    "conditional": task.when is not None,
                }
                for name, task in self.tasks.items()
            },
        }
