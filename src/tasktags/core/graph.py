"""
Per-tag dependency graph over tasks and subtasks.

Nodes are index keys (``"5"`` for tasks, ``"5.2"`` for subtasks); an edge
``a -> b`` means ``a`` depends on ``b``. Edges to ids that do not exist in
the tag are kept for reporting but ignored by traversal.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Dict, List, Optional, Tuple, Union

from tasktags.core.errors.tags import TagNotFoundError
from tasktags.core.ids import normalize_key, parse_id
from tasktags.core.store.tagged import as_int, entity_dependency_keys

_WHITE, _GREY, _BLACK = 0, 1, 2


class DependencyGraph:
    """Adjacency view of one tag."""

    def __init__(self, edges: Dict[str, List[str]], tag: Optional[str] = None):
        self.tag = tag
        self._edges = edges

    @classmethod
    def for_tag(cls, document: Dict[str, Any], tag: str) -> "DependencyGraph":
        """Build the graph for ``tag``.

        Raises:
            TagNotFoundError: The tag is absent.
        """
        partition = document.get(tag)
        if partition is None:
            raise TagNotFoundError(tag)
        tasks = partition.get("tasks") if isinstance(partition, dict) else None
        edges: Dict[str, List[str]] = {}
        for task in tasks if isinstance(tasks, list) else []:
            if not isinstance(task, dict):
                continue
            task_id = as_int(task.get("id"))
            if task_id is None:
                continue
            edges[str(task_id)] = entity_dependency_keys(task)
            for subtask in task.get("subtasks") or []:
                if not isinstance(subtask, dict):
                    continue
                sub_id = as_int(subtask.get("id"))
                if sub_id is not None:
                    edges[f"{task_id}.{sub_id}"] = entity_dependency_keys(subtask, task)
        return cls(edges, tag=tag)

    def __len__(self) -> int:
        return len(self._edges)

    def __contains__(self, key: object) -> bool:
        return key in self._edges

    @staticmethod
    def _key(task_id: Any) -> str:
        return str(parse_id(task_id))

    def exists(self, task_id: Any) -> bool:
        return self._key(task_id) in self._edges

    def dependencies_of(self, task_id: Any) -> List[Union[int, str]]:
        """Direct dependencies of a task or subtask (ints for tasks, ``"P.S"`` for subtasks)."""
        return [normalize_key(dep) for dep in self._edges.get(self._key(task_id), [])]

    def can_reach(self, start_id: Any, target_id: Any) -> bool:
        """Whether following dependencies from ``start_id`` arrives at ``target_id``."""
        start = self._key(start_id)
        target = self._key(target_id)
        visited = set()
        queue = deque([start])

        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)

            if current == target:
                return True

            for next_id in self._edges.get(current, []):
                if next_id not in visited:
                    queue.append(next_id)

        return False

    def would_create_cycle(self, source_id: Any, target_id: Any) -> bool:
        """Whether adding ``source -> target`` would close a cycle."""
        if self._key(source_id) == self._key(target_id):
            return True
        return self.can_reach(target_id, source_id)

    def find_cycle(self) -> Optional[List[str]]:
        """Return one cycle as a key path (first key repeated at the end), or None."""
        cycles = self._walk_cycles(first_only=True)
        return cycles[0] if cycles else None

    def find_cycles(self) -> List[List[str]]:
        """Every cycle closed by a back edge of one depth-first walk."""
        return self._walk_cycles(first_only=False)

    def _walk_cycles(self, first_only: bool) -> List[List[str]]:
        found: List[List[str]] = []
        color = {key: _WHITE for key in self._edges}
        parent: Dict[str, str] = {}

        for root in self._edges:
            if color[root] != _WHITE:
                continue
            stack: List[Tuple[str, int]] = [(root, 0)]
            color[root] = _GREY
            while stack:
                node, position = stack[-1]
                neighbours = [n for n in self._edges.get(node, []) if n in self._edges]
                if position < len(neighbours):
                    stack[-1] = (node, position + 1)
                    nxt = neighbours[position]
                    if color[nxt] == _GREY:
                        cycle = [nxt]
                        cursor = node
                        while cursor != nxt:
                            cycle.append(cursor)
                            cursor = parent[cursor]
                        cycle.append(nxt)
                        cycle.reverse()
                        found.append(cycle)
                        if first_only:
                            return found
                    if color[nxt] == _WHITE:
                        color[nxt] = _GREY
                        parent[nxt] = node
                        stack.append((nxt, 0))
                else:
                    color[node] = _BLACK
                    stack.pop()
        return found

    def has_cycle(self) -> bool:
        return self.find_cycle() is not None

    def missing_dependencies(self) -> List[Tuple[str, str]]:
        """``(owner, dependency)`` pairs whose dependency does not exist in the tag."""
        return [
            (owner, dep)
            for owner, deps in self._edges.items()
            for dep in deps
            if dep not in self._edges
        ]


def task_exists(document: Dict[str, Any], tag: str, task_id: Any) -> bool:
    return DependencyGraph.for_tag(document, tag).exists(task_id)


def dependencies_of(document: Dict[str, Any], tag: str, task_id: Any) -> List[Union[int, str]]:
    return DependencyGraph.for_tag(document, tag).dependencies_of(task_id)


def has_cycle(document: Dict[str, Any], tag: str) -> bool:
    return DependencyGraph.for_tag(document, tag).has_cycle()
