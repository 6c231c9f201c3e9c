# src/pagetree_kit/traversal.py

"""Bounded, cycle-aware traversal.

Every recursive walk in the engine goes through a ``TraversalGuard``. The
guard tracks the identities of the ancestors on the current descent path
only: each descent builds a new ``frozenset`` from its parent's, so sibling
walks never see each other's entries. A node is a cycle only when it is one
of its own ancestors. Two distinct subtrees that look identical are walked
normally.

The guard also counts steps against a budget, bounds the depth, and polls an
optional cancellation callable on every step.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from typing import TYPE_CHECKING

from .errors import CycleError, TraversalBudgetExceeded

if TYPE_CHECKING:
    from .config import EngineConfig
    from .parsers.models import Node

logger = logging.getLogger(__name__)

Ancestors = frozenset[int]
NO_ANCESTORS: Ancestors = frozenset()


class TraversalGuard:
    def __init__(
        self,
        *,
        step_budget: int | None = None,
        max_depth: int | None = None,
        should_cancel: Callable[[], bool] | None = None,
    ) -> None:
        self._step_budget = step_budget
        self._max_depth = max_depth
        self._should_cancel = should_cancel
        self._steps = 0

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        should_cancel: Callable[[], bool] | None = None,
    ) -> TraversalGuard:
        return cls(
            step_budget=config.step_budget,
            max_depth=config.max_depth,
            should_cancel=should_cancel,
        )

    @property
    def steps(self) -> int:
        return self._steps

    def descend(
        self,
        item: object,
        ancestors: Ancestors,
        path: tuple[int, ...],
        node_id: str | None = None,
    ) -> Ancestors:
        """Account for one step into ``item`` and return the child scope.

        Raises:
            CycleError: ``item`` is already one of its own ancestors.
            TraversalBudgetExceeded: step budget or depth exhausted, or the
                walk was cancelled.
        """
        self._steps += 1
        if self._step_budget is not None and self._steps > self._step_budget:
            logger.error("Traversal aborted after %d steps at path %s", self._steps, path)
            raise TraversalBudgetExceeded(
                f"Traversal exceeded step budget of {self._step_budget}",
                node_id=node_id,
                path=path,
                details={"steps": self._steps},
            )
        if self._max_depth is not None and len(path) > self._max_depth:
            raise TraversalBudgetExceeded(
                f"Traversal exceeded maximum depth of {self._max_depth}",
                node_id=node_id,
                path=path,
                details={"depth": len(path)},
            )
        if self._should_cancel is not None and self._should_cancel():
            raise TraversalBudgetExceeded(
                "Traversal cancelled", node_id=node_id, path=path
            )

        key = id(item)
        if key in ancestors:
            logger.error("Cycle detected at path %s (id=%s)", path, node_id)
            raise CycleError(
                "Node appears among its own ancestors",
                node_id=node_id,
                path=path,
            )
        return ancestors | {key}

    def walk(
        self,
        nodes: Sequence[Node],
        *,
        prefix: tuple[int, ...] = (),
        ancestors: Ancestors = NO_ANCESTORS,
        parent: Node | None = None,
        start: int = 0,
    ) -> Iterator[tuple[Node, tuple[int, ...], Node | None]]:
        """Yield ``(node, path, parent)`` depth-first in document order.

        ``start`` skips the first siblings of ``nodes``; their subtrees are
        not visited.
        """
        for position in range(start, len(nodes)):
            node = nodes[position]
            path = prefix + (position,)
            scope = self.descend(node, ancestors, path, node_id=node.id)
            yield node, path, parent
            yield from self.walk(
                node.children, prefix=path, ancestors=scope, parent=node
            )
