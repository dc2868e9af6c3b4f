"""
Typed producer outputs and the restricted view dependents see.

Every producer that shares data with dependents defines one frozen ``ProducerOutput``
subclass tagged with its identity. Dependents look outputs up by type::

    git = deps.get(GitOutput)
    if git is None:
        return False
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, ClassVar, TypeVar, overload

O = TypeVar("O", bound="ProducerOutput")


@dataclass(frozen=True, slots=True)
class ProducerOutput:
    """Base class for output payloads; ``producer_id`` names the emitting producer."""

    producer_id: ClassVar[str] = ""


class DependencyView(Mapping[str, ProducerOutput]):
    """Read-only snapshot of the outputs a producer declared a need for.

    Identities whose producer was skipped or failed are absent, never defaulted.
    """

    __slots__ = ("_outputs",)

    def __init__(self, outputs: Mapping[str, ProducerOutput] | None = None) -> None:
        self._outputs: Mapping[str, ProducerOutput] = MappingProxyType(dict(outputs or {}))

    @classmethod
    def restricted(
        cls,
        outputs: Mapping[str, ProducerOutput],
        needs: tuple[str, ...],
    ) -> DependencyView:
        return cls({identity: outputs[identity] for identity in needs if identity in outputs})

    @overload
    def get(self, key: type[O], default: None = None) -> O | None: ...

    @overload
    def get(self, key: str, default: Any = None) -> Any: ...

    def get(self, key: Any, default: Any = None) -> Any:
        """Look up by output type (typed, ``None`` when absent) or by identity string."""

        if isinstance(key, type) and issubclass(key, ProducerOutput):
            candidate = self._outputs.get(key.producer_id)
            if isinstance(candidate, key):
                return candidate
            return None
        return self._outputs.get(key, default)

    def __getitem__(self, identity: str) -> ProducerOutput:
        return self._outputs[identity]

    def __iter__(self) -> Iterator[str]:
        return iter(self._outputs)

    def __len__(self) -> int:
        return len(self._outputs)

    def __repr__(self) -> str:
        return f"DependencyView({sorted(self._outputs)!r})"


__all__ = ["DependencyView", "ProducerOutput"]
