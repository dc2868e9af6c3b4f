"""
dossier — unit tests for producer dependency resolution

File: tests/unit/plugins/test_resolver.py

Purpose
- Validate that resolved orders are topological and deterministic for a registration order.

What this test file should cover
- Linear chains registered in either direction.
- Cycles of length >= 2 (and self-needs) rejected with the implicated identities.
- Needs naming unregistered producers are ignored for ordering.
- Property: every acyclic graph resolves with each need before its dependent.

Functional requirements
- No filesystem or network usage.

Non-functional requirements
- Deterministic (hypothesis is derandomized).
"""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from dossier.plugins import CircularDependencyError, ProducerDescriptor, resolve_order


def _descriptor(identity: str, *needs: str) -> ProducerDescriptor:
    return ProducerDescriptor(identity=identity, name=identity.upper(), needs=needs)


def test_dependency_precedes_dependent() -> None:
    order = resolve_order([_descriptor("A"), _descriptor("B", "A")])
    assert order == ("A", "B")


def test_reverse_registration_still_resolves_chain() -> None:
    order = resolve_order([_descriptor("C", "B"), _descriptor("B", "A"), _descriptor("A")])
    assert order == ("A", "B", "C")


def test_independent_producers_keep_registration_order() -> None:
    order = resolve_order([_descriptor("z"), _descriptor("a"), _descriptor("m")])
    assert order == ("z", "a", "m")


def test_two_node_cycle_names_members() -> None:
    with pytest.raises(CircularDependencyError) as excinfo:
        resolve_order([_descriptor("A", "B"), _descriptor("B", "A")])

    assert excinfo.value.cycle == ("A", "B", "A")
    assert "A" in str(excinfo.value)


def test_long_cycle_reports_closed_path() -> None:
    descriptors = [
        _descriptor("root"),
        _descriptor("x", "root", "z"),
        _descriptor("y", "x"),
        _descriptor("z", "y"),
    ]
    with pytest.raises(CircularDependencyError) as excinfo:
        resolve_order(descriptors)

    cycle = excinfo.value.cycle
    assert cycle[0] == cycle[-1]
    assert set(cycle) == {"x", "y", "z"}


def test_self_need_is_a_cycle() -> None:
    with pytest.raises(CircularDependencyError):
        resolve_order([_descriptor("solo", "solo")])


def test_unknown_needs_are_ignored() -> None:
    order = resolve_order([_descriptor("b", "missing"), _descriptor("a")])
    assert order == ("b", "a")


def test_deep_chain_does_not_recurse() -> None:
    size = 3000
    descriptors = [_descriptor(f"n{index}", f"n{index + 1}") for index in range(size)]
    descriptors.append(_descriptor(f"n{size}"))

    order = resolve_order(descriptors)

    assert order[0] == f"n{size}"
    assert order[-1] == "n0"
    assert len(order) == size + 1


@st.composite
def _acyclic_graph(draw: st.DrawFn) -> list[ProducerDescriptor]:
    count = draw(st.integers(min_value=1, max_value=8))
    names = [f"p{index}" for index in range(count)]
    # Edges only point at lower indexes, so the graph is acyclic by construction.
    needs = [
        draw(st.lists(st.sampled_from(names[:index]), unique=True)) if index else []
        for index in range(count)
    ]
    registration = draw(st.permutations(list(range(count))))
    return [_descriptor(names[index], *needs[index]) for index in registration]


@given(descriptors=_acyclic_graph())
@settings(max_examples=60, derandomize=True, deadline=None)
def test_property_needs_always_precede_dependents(
    descriptors: list[ProducerDescriptor],
) -> None:
    order = resolve_order(descriptors)
    position = {identity: index for index, identity in enumerate(order)}

    assert sorted(order) == sorted(item.identity for item in descriptors)
    for descriptor in descriptors:
        for need in descriptor.needs:
            assert position[need] < position[descriptor.identity]


@given(descriptors=_acyclic_graph())
@settings(max_examples=30, derandomize=True, deadline=None)
def test_property_resolution_is_deterministic(descriptors: list[ProducerDescriptor]) -> None:
    assert resolve_order(descriptors) == resolve_order(list(descriptors))
