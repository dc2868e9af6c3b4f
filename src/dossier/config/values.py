"""
Tri-state configuration values for optional integrations.

A field is either never asked (``Unset``), asked and refused (``Declined``), or holds a
concrete value (``Present``). The string markers ``$pending`` / ``$declined`` exist only in
the persisted JSON; in memory every call site handles the three variants explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Final, Generic, TypeAlias, TypeVar, Union

from dossier.constants import DECLINED_MARKER, PENDING_MARKER

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Unset:
    """Not asked yet."""

    def __repr__(self) -> str:
        return "UNSET"


@dataclass(frozen=True, slots=True)
class Declined:
    """Asked, and the operator chose none."""

    def __repr__(self) -> str:
        return "DECLINED"


@dataclass(frozen=True, slots=True)
class Present(Generic[T]):
    value: T


ConfigValue: TypeAlias = Union[Unset, Declined, Present[T]]

UNSET: Final[Unset] = Unset()
DECLINED: Final[Declined] = Declined()


def present_or_none(value: ConfigValue[T]) -> T | None:
    """Return the wrapped value for ``Present``, otherwise ``None``."""

    if isinstance(value, Present):
        return value.value
    return None


def is_decided(value: ConfigValue[Any]) -> bool:
    """``True`` once the operator has been asked (declined or answered)."""

    return not isinstance(value, Unset)


def encode_config_value(value: ConfigValue[Any]) -> object:
    if isinstance(value, Unset):
        return PENDING_MARKER
    if isinstance(value, Declined):
        return DECLINED_MARKER
    if isinstance(value, Present):
        return value.value
    raise TypeError(f"not a tri-state config value: {value!r}")


def decode_config_value(raw: object) -> ConfigValue[Any]:
    if isinstance(raw, (Unset, Declined, Present)):
        return raw
    if raw is None or raw == PENDING_MARKER:
        return UNSET
    if raw == DECLINED_MARKER:
        return DECLINED
    return Present(raw)


__all__ = [
    "DECLINED",
    "UNSET",
    "ConfigValue",
    "Declined",
    "Present",
    "Unset",
    "decode_config_value",
    "encode_config_value",
    "is_decided",
    "present_or_none",
]
