"""
dossier — producer dependency resolver

File: src/dossier/plugins/resolver.py

Purpose
- Turn registered descriptors into a linear order where every producer follows its needs.

Algorithm
- Depth-first traversal seeded in registration order; needs are visited in declared order
  before the producer itself; post-order append.
- Three-color marking. An edge into an in-progress node raises ``CircularDependencyError``
  with the closed cycle path, e.g. ``("A", "B", "A")``.
- Needs naming an unregistered identity are ignored for ordering.
- Iterative (explicit frame stack) so deep chains do not hit the recursion limit.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Final

from dossier.plugins.base import CircularDependencyError, ProducerDescriptor

_UNVISITED: Final[int] = 0
_IN_PROGRESS: Final[int] = 1
_FINISHED: Final[int] = 2


def resolve_order(descriptors: Sequence[ProducerDescriptor]) -> tuple[str, ...]:
    """Return producer identities in dependency order or raise ``CircularDependencyError``."""

    by_identity: dict[str, ProducerDescriptor] = {}
    for descriptor in descriptors:
        by_identity.setdefault(descriptor.identity, descriptor)

    state: dict[str, int] = {}
    order: list[str] = []

    def known_needs(identity: str) -> Iterator[str]:
        return iter(tuple(need for need in by_identity[identity].needs if need in by_identity))

    for start in by_identity:
        if state.get(start, _UNVISITED) != _UNVISITED:
            continue

        state[start] = _IN_PROGRESS
        stack: list[str] = [start]
        frames: list[tuple[str, Iterator[str]]] = [(start, known_needs(start))]

        while frames:
            node, needs = frames[-1]
            descended = False
            for need in needs:
                need_state = state.get(need, _UNVISITED)
                if need_state == _FINISHED:
                    continue
                if need_state == _IN_PROGRESS:
                    entry = stack.index(need)
                    raise CircularDependencyError((*stack[entry:], need))
                state[need] = _IN_PROGRESS
                stack.append(need)
                frames.append((need, known_needs(need)))
                descended = True
                break

            if descended:
                continue

            frames.pop()
            stack.pop()
            state[node] = _FINISHED
            order.append(node)

    return tuple(order)


__all__ = ["resolve_order"]
