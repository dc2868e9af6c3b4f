"""
dossier — producer registry

File: src/dossier/plugins/registry.py

Purpose
- Hold producers keyed by identity in registration order.
- Cache the resolved execution order; a new registration invalidates it.
"""

from __future__ import annotations

from collections.abc import Iterator

from dossier.plugins.base import DuplicateIdentityError, Producer
from dossier.plugins.resolver import resolve_order


class ProducerRegistry:
    """Deterministic producer registry."""

    __slots__ = ("_producers", "_order")

    def __init__(self) -> None:
        self._producers: dict[str, Producer] = {}
        self._order: tuple[str, ...] | None = None

    def register(self, producer: Producer) -> None:
        if not isinstance(producer, Producer):
            raise TypeError(f"not a producer: {producer!r}")
        identity = producer.descriptor.identity
        if identity in self._producers:
            raise DuplicateIdentityError(identity)
        self._producers[identity] = producer
        self._order = None

    def get(self, identity: str) -> Producer | None:
        return self._producers.get(identity)

    def identities(self) -> tuple[str, ...]:
        """Identities in registration order."""

        return tuple(self._producers)

    def sensitive_fields(self) -> frozenset[str]:
        fields: set[str] = set()
        for producer in self._producers.values():
            fields.update(producer.descriptor.sensitive_fields)
        return frozenset(fields)

    def resolved_order(self) -> tuple[str, ...]:
        if self._order is None:
            self._order = resolve_order(
                [producer.descriptor for producer in self._producers.values()]
            )
        return self._order

    def ordered(self) -> tuple[Producer, ...]:
        return tuple(self._producers[identity] for identity in self.resolved_order())

    def __contains__(self, identity: object) -> bool:
        return identity in self._producers

    def __iter__(self) -> Iterator[Producer]:
        return iter(tuple(self._producers.values()))

    def __len__(self) -> int:
        return len(self._producers)


__all__ = ["ProducerRegistry"]
