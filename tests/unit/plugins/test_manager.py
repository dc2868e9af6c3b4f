"""
dossier — unit tests for the plugin manager

File: tests/unit/plugins/test_manager.py

Purpose
- Validate the configuration pass (checkpoints, cancellation, failure recovery) and the
  execution pass (restricted dependency views, failure isolation, stable aggregation).

What this test file should cover
- Dependent producers only see outputs of declared needs that succeeded.
- A failing producer never aborts the pass; dependents are skipped via eligibility.
- ``Cancelled`` and raised ``ConfigurationCancelled`` stop the pass and keep checkpoints.
- Lifecycle: shutdown closes producers once; a closed manager refuses work.
- Decision events are emitted through structlog.

Functional requirements
- No filesystem or network usage.

Non-functional requirements
- Deterministic.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, ClassVar

import pytest
from structlog.testing import capture_logs

from dossier.config import DossierConfig
from dossier.plugins import (
    Cancelled,
    Completed,
    ConfigurationCancelled,
    ConfigureOptions,
    ContentFragment,
    DependencyView,
    PluginManager,
    PluginManagerClosedError,
    ProducerDescriptor,
    ProducerOutput,
    ProducerResult,
    ProducerStatus,
    aggregate,
)


@dataclass(frozen=True, slots=True)
class CountOutput(ProducerOutput):
    producer_id: ClassVar[str] = "A"

    count: int


@dataclass(frozen=True, slots=True)
class NoteOutput(ProducerOutput):
    producer_id: ClassVar[str] = "B"

    text: str


@dataclass(frozen=True, slots=True)
class CloseOutput(ProducerOutput):
    producer_id: ClassVar[str] = "C"


class FakeProducer:
    """Scriptable producer recording every call made to it."""

    def __init__(
        self,
        identity: str,
        *,
        needs: tuple[str, ...] = (),
        sensitive: frozenset[str] = frozenset(),
        configure: Callable[[DossierConfig, ConfigureOptions], Any] | None = None,
        eligible: Callable[[DossierConfig, DependencyView], bool] | None = None,
        run: Callable[[DossierConfig, DependencyView], Any] | None = None,
        close: Callable[[], None] | None = None,
    ) -> None:
        self.descriptor = ProducerDescriptor(
            identity=identity, name=f"Producer {identity}", needs=needs, sensitive_fields=sensitive
        )
        self._configure = configure
        self._eligible = eligible
        self._run = run
        self._close = close
        self.calls: list[str] = []
        self.seen_deps: list[set[str]] = []
        self.close_count = 0

    def configure(self, config: DossierConfig, options: ConfigureOptions) -> Any:
        self.calls.append("configure")
        if self._configure is None:
            return Completed(config)
        return self._configure(config, options)

    def is_eligible(self, config: DossierConfig, deps: DependencyView) -> bool:
        self.calls.append("is_eligible")
        self.seen_deps.append(set(deps))
        return True if self._eligible is None else self._eligible(config, deps)

    def run(self, config: DossierConfig, deps: DependencyView) -> Any:
        self.calls.append("run")
        return None if self._run is None else self._run(config, deps)

    def close(self) -> None:
        self.close_count += 1
        if self._close is not None:
            self._close()


class RecordingStore:
    def __init__(self) -> None:
        self.saved: list[DossierConfig] = []

    def save(self, config: DossierConfig) -> None:
        self.saved.append(config)


def _fragment(title: str, priority: int, source: str) -> ContentFragment:
    return ContentFragment(
        title=title, body=f"## {title}\n", priority=priority, source_producer=source
    )


def _manager(*producers: FakeProducer, store: RecordingStore | None = None) -> PluginManager:
    manager = PluginManager(store=store)
    manager.register_all(producers)
    return manager


# Execution pass ------------------------------------------------------------


@pytest.mark.asyncio
async def test_dependent_reads_typed_output_and_aggregates_by_priority() -> None:
    producer_a = FakeProducer(
        "A",
        run=lambda config, deps: ProducerResult(
            output=CountOutput(count=3), fragments=(_fragment("X", 10, "A"),)
        ),
    )

    def b_eligible(config: DossierConfig, deps: DependencyView) -> bool:
        counted = deps.get(CountOutput)
        return counted is not None and counted.count > 0

    producer_b = FakeProducer(
        "B",
        needs=("A",),
        eligible=b_eligible,
        run=lambda config, deps: ProducerResult(
            output=NoteOutput(text="ok"), fragments=(_fragment("Y", 5, "B"),)
        ),
    )

    with _manager(producer_b, producer_a) as manager:
        assert manager.resolved_order() == ("A", "B")
        report = await manager.execute(DossierConfig())

    assert [fragment.title for fragment in report.fragments] == ["X", "Y"]
    assert [fragment.title for fragment in report.aggregated] == ["Y", "X"]
    assert isinstance(report.outputs["A"], CountOutput)
    assert report.outcome("B") is not None
    assert report.outcome("B").status is ProducerStatus.SUCCEEDED  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_failed_producer_withholds_output_and_dependent_is_skipped() -> None:
    def explode(config: DossierConfig, deps: DependencyView) -> None:
        raise RuntimeError("boom")

    producer_a = FakeProducer("A", run=explode)
    producer_b = FakeProducer(
        "B",
        needs=("A",),
        eligible=lambda config, deps: deps.get(CountOutput) is not None,
    )
    producer_c = FakeProducer(
        "C",
        run=lambda config, deps: ProducerResult(
            output=CloseOutput(), fragments=(_fragment("independent", 1, "C"),)
        ),
    )

    with capture_logs() as events:
        report = await _manager(producer_a, producer_b, producer_c).execute(DossierConfig())

    assert [fragment.title for fragment in report.fragments] == ["independent"]
    assert "A" not in report.outputs
    assert producer_b.calls == ["is_eligible"]
    assert producer_b.seen_deps == [set()]
    assert report.failed == ("A",)
    assert report.outcome("B").status is ProducerStatus.SKIPPED  # type: ignore[union-attr]

    failure = next(event for event in events if event["event"] == "plugin_run_failed")
    assert failure["plugin"] == "A"
    assert "RuntimeError: boom" in failure["error"]
    assert failure["log_level"] == "warning"
    assert any(
        event["event"] == "plugin_skipped" and event["plugin"] == "B" for event in events
    )


@pytest.mark.asyncio
async def test_content_only_result_keeps_fragments_without_output() -> None:
    producer_a = FakeProducer(
        "A",
        run=lambda config, deps: ProducerResult(output=None, fragments=(_fragment("X", 3, "A"),)),
    )
    producer_b = FakeProducer("B", needs=("A",))

    report = await _manager(producer_a, producer_b).execute(DossierConfig())

    outcome = report.outcome("A")
    assert outcome is not None
    assert outcome.status is ProducerStatus.SUCCEEDED
    assert outcome.fragment_count == 1
    assert [fragment.title for fragment in report.aggregated] == ["X"]
    assert report.outputs == {}
    assert producer_b.seen_deps == [set()]


@pytest.mark.asyncio
async def test_dependency_view_is_restricted_to_declared_needs() -> None:
    producer_a = FakeProducer(
        "A", run=lambda config, deps: ProducerResult(output=CountOutput(count=1))
    )
    producer_b = FakeProducer(
        "B", run=lambda config, deps: ProducerResult(output=NoteOutput(text="b"))
    )
    producer_c = FakeProducer("C", needs=("A",))

    await _manager(producer_a, producer_b, producer_c).execute(DossierConfig())

    assert producer_c.seen_deps == [{"A"}]


@pytest.mark.asyncio
async def test_async_run_steps_are_awaited_in_order() -> None:
    order: list[str] = []

    def make_run(identity: str, output: ProducerOutput) -> Callable[..., Any]:
        async def run(config: DossierConfig, deps: DependencyView) -> ProducerResult:
            order.append(identity)
            return ProducerResult(output=output, fragments=(_fragment(identity, 0, identity),))

        return run

    producer_a = FakeProducer("A", run=make_run("A", CountOutput(count=2)))
    producer_b = FakeProducer("B", needs=("A",), run=make_run("B", NoteOutput(text="x")))

    report = await _manager(producer_b, producer_a).execute(DossierConfig())

    assert order == ["A", "B"]
    assert [fragment.title for fragment in report.aggregated] == ["A", "B"]


@pytest.mark.asyncio
async def test_empty_result_records_nothing() -> None:
    producer_a = FakeProducer("A", run=lambda config, deps: None)
    producer_b = FakeProducer("B", needs=("A",))

    report = await _manager(producer_a, producer_b).execute(DossierConfig())

    assert report.outcome("A").status is ProducerStatus.EMPTY  # type: ignore[union-attr]
    assert report.outputs == {}
    assert producer_b.seen_deps == [set()]


@pytest.mark.asyncio
async def test_malformed_results_are_failures() -> None:
    wrong_type = FakeProducer("A", run=lambda config, deps: {"fragments": []})
    wrong_tag = FakeProducer(
        "B", run=lambda config, deps: ProducerResult(output=CountOutput(count=1))
    )

    report = await _manager(wrong_type, wrong_tag).execute(DossierConfig())

    assert report.failed == ("A", "B")
    assert report.outputs == {}
    outcome = report.outcome("A")
    assert outcome is not None
    assert "expected ProducerResult" in (outcome.error or "")


@pytest.mark.asyncio
async def test_eligibility_failure_is_isolated() -> None:
    def broken(config: DossierConfig, deps: DependencyView) -> bool:
        raise KeyError("missing")

    producer_a = FakeProducer("A", eligible=broken)
    producer_b = FakeProducer(
        "B", run=lambda config, deps: ProducerResult(output=NoteOutput(text="fine"))
    )

    with capture_logs() as events:
        report = await _manager(producer_a, producer_b).execute(DossierConfig())

    assert producer_a.calls == ["is_eligible"]
    assert report.outcome("A").status is ProducerStatus.FAILED  # type: ignore[union-attr]
    assert "B" in report.outputs
    assert any(event["event"] == "plugin_eligibility_failed" for event in events)
    completed = next(event for event in events if event["event"] == "execution_completed")
    assert completed["statuses"] == {"A": "failed", "B": "succeeded"}


def test_aggregate_is_stable_for_equal_priorities() -> None:
    fragments = [
        _fragment("first", 5, "a"),
        _fragment("low", 1, "b"),
        _fragment("second", 5, "c"),
        _fragment("third", 5, "a"),
    ]

    assert [item.title for item in aggregate(fragments)] == ["low", "first", "second", "third"]


# Configuration pass --------------------------------------------------------


@pytest.mark.asyncio
async def test_changed_config_is_checkpointed_and_unchanged_is_not() -> None:
    store = RecordingStore()
    unchanged = FakeProducer("A")
    changer = FakeProducer(
        "B", configure=lambda config, options: Completed(config.evolve(company_name="Acme"))
    )
    reader_seen: list[str] = []

    def reader(config: DossierConfig, options: ConfigureOptions) -> Completed:
        reader_seen.append(config.company_name)
        return Completed(config)

    follower = FakeProducer("C", configure=reader)

    final = await _manager(unchanged, changer, follower, store=store).run_config_prompts(
        DossierConfig()
    )

    assert final.company_name == "Acme"
    assert store.saved == [final]
    assert reader_seen == ["Acme"]


@pytest.mark.asyncio
async def test_cancelled_outcome_stops_pass_and_keeps_earlier_checkpoint() -> None:
    store = RecordingStore()
    first = FakeProducer(
        "A", configure=lambda config, options: Completed(config.evolve(language="German"))
    )
    cancel = FakeProducer("B", configure=lambda config, options: Cancelled("operator quit"))
    never = FakeProducer("C")

    with pytest.raises(ConfigurationCancelled) as excinfo:
        await _manager(first, cancel, never, store=store).run_config_prompts(DossierConfig())

    assert excinfo.value.producer_id == "B"
    assert excinfo.value.reason == "operator quit"
    assert [saved.language for saved in store.saved] == ["German"]
    assert never.calls == []


@pytest.mark.asyncio
async def test_raised_cancellation_propagates_unchanged() -> None:
    raised = ConfigurationCancelled("ctrl-c")

    def cancel(config: DossierConfig, options: ConfigureOptions) -> Completed:
        raise raised

    producer = FakeProducer("A", configure=cancel)
    never = FakeProducer("B")

    with capture_logs() as events, pytest.raises(ConfigurationCancelled) as excinfo:
        await _manager(producer, never).run_config_prompts(DossierConfig())

    assert excinfo.value is raised
    assert excinfo.value.reason == "ctrl-c"
    assert excinfo.value.producer_id is None
    assert never.calls == []
    cancelled = [event for event in events if event["event"] == "plugin_config_cancelled"]
    assert [event["plugin"] for event in cancelled] == ["A"]


@pytest.mark.asyncio
async def test_configuration_failure_is_logged_and_pass_continues() -> None:
    def broken(config: DossierConfig, options: ConfigureOptions) -> Completed:
        raise OSError("disk gone")

    async def async_change(config: DossierConfig, options: ConfigureOptions) -> Completed:
        return Completed(config.evolve(max_commits=5))

    producer_a = FakeProducer("A", configure=broken)
    producer_b = FakeProducer("B", configure=lambda config, options: "not an outcome")
    producer_c = FakeProducer("C", configure=async_change)

    with capture_logs() as events:
        final = await _manager(producer_a, producer_b, producer_c).run_config_prompts(
            DossierConfig(), ConfigureOptions(reset=True)
        )

    assert final.max_commits == 5
    failed = [event["plugin"] for event in events if event["event"] == "plugin_config_failed"]
    assert failed == ["A", "B"]


@pytest.mark.asyncio
async def test_reset_flag_reaches_every_producer() -> None:
    seen: list[bool] = []

    def record(config: DossierConfig, options: ConfigureOptions) -> Completed:
        seen.append(options.reset)
        return Completed(config)

    manager = _manager(FakeProducer("A", configure=record), FakeProducer("B", configure=record))
    await manager.run_config_prompts(DossierConfig(), ConfigureOptions(reset=True))

    assert seen == [True, True]


# Lifecycle -----------------------------------------------------------------


def test_shutdown_closes_producers_once_and_tolerates_failures() -> None:
    def failing_close() -> None:
        raise RuntimeError("close failed")

    producer_a = FakeProducer("A", close=failing_close)
    producer_b = FakeProducer("B")
    manager = _manager(producer_a, producer_b)

    with capture_logs() as events:
        manager.shutdown()
        manager.shutdown()

    assert manager.closed
    assert producer_a.close_count == 1
    assert producer_b.close_count == 1
    assert [event["event"] for event in events] == ["plugin_close_failed"]


@pytest.mark.asyncio
async def test_closed_manager_refuses_work() -> None:
    manager = _manager(FakeProducer("A"))
    manager.shutdown()

    with pytest.raises(PluginManagerClosedError):
        manager.register(FakeProducer("B"))
    with pytest.raises(PluginManagerClosedError):
        await manager.execute(DossierConfig())


def test_independent_managers_do_not_share_state() -> None:
    first = _manager(FakeProducer("A", sensitive=frozenset({"github_token"})))
    second = _manager(FakeProducer("A"))

    assert first.sensitive_fields() == frozenset({"github_token"})
    assert second.sensitive_fields() == frozenset()
    assert len(first) == len(second) == 1
    assert "A" in first
