"""
dossier — plugin manager

File: src/dossier/plugins/manager.py

Purpose
- Register producers, resolve their order, and drive the two passes:
  configuration (interactive, checkpointed) and execution (failure-isolated).
- Merge emitted fragments into the final priority order.

Normative behavior
- Both passes are sequential in resolved order; each step is awaited before the next starts.
- Configuration: a changed config (new object) is saved immediately through the store.
  ``Cancelled`` stops the pass as a ``ConfigurationCancelled`` naming the producer; a raised
  ``ConfigurationCancelled`` propagates as the same, unmodified object. Any other step
  failure is logged and the pass continues.
- Execution: each producer sees only the outputs of its declared needs that succeeded.
  Eligibility ``False`` skips silently. A failing eligibility check or run, or a malformed
  result, is logged and withholds the producer's output; the pass continues. A result with
  fragments but no output contributes its fragments and leaves dependents without an entry.
- Aggregation is a stable sort by ascending priority.
- Decisions are emitted as structlog events (``plugin_*``, ``execution_completed``).
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType, TracebackType
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

import structlog

from dossier.config.schema import DossierConfig
from dossier.plugins.base import (
    Cancelled,
    Completed,
    ConfigurationCancelled,
    ConfigureOptions,
    ContentFragment,
    PluginManagerClosedError,
    Producer,
    ProducerResult,
)
from dossier.plugins.outputs import DependencyView, ProducerOutput
from dossier.plugins.registry import ProducerRegistry

if TYPE_CHECKING:
    from collections.abc import Iterable

T = TypeVar("T")


class ConfigSink(Protocol):
    """Checkpoint target for the configuration pass."""

    def save(self, config: DossierConfig) -> None: ...


class ProducerStatus(StrEnum):
    """Per-producer result of one execution pass."""

    SUCCEEDED = "succeeded"
    EMPTY = "empty"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ProducerOutcome:
    identity: str
    name: str
    status: ProducerStatus
    fragment_count: int = 0
    error: str | None = None


@dataclass(frozen=True, slots=True)
class ExecutionReport:
    """Everything one execution pass produced, in execution order."""

    fragments: tuple[ContentFragment, ...]
    outputs: Mapping[str, ProducerOutput]
    outcomes: tuple[ProducerOutcome, ...]

    @property
    def aggregated(self) -> tuple[ContentFragment, ...]:
        return aggregate(self.fragments)

    @property
    def failed(self) -> tuple[str, ...]:
        return tuple(
            item.identity for item in self.outcomes if item.status is ProducerStatus.FAILED
        )

    def outcome(self, identity: str) -> ProducerOutcome | None:
        for item in self.outcomes:
            if item.identity == identity:
                return item
        return None


class _StepFailure(Exception):
    """Internal: a producer step returned something outside its contract."""


def aggregate(fragments: Iterable[ContentFragment]) -> tuple[ContentFragment, ...]:
    """Stable sort by ascending priority; ties keep emission order."""

    return tuple(sorted(fragments, key=lambda fragment: fragment.priority))


class PluginManager:
    """Explicitly constructed orchestrator; one instance per run, shut down when done."""

    def __init__(
        self,
        *,
        store: ConfigSink | None = None,
        logger: Any | None = None,
    ) -> None:
        self._registry = ProducerRegistry()
        self._store = store
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._closed = False

    # Registry surface

    def register(self, producer: Producer) -> None:
        self._ensure_open()
        self._registry.register(producer)
        descriptor = producer.descriptor
        self._logger.debug(
            "plugin_registered",
            plugin=descriptor.identity,
            needs=list(descriptor.needs),
        )

    def register_all(self, producers: Iterable[Producer]) -> None:
        for producer in producers:
            self.register(producer)

    def sensitive_fields(self) -> frozenset[str]:
        self._ensure_open()
        return self._registry.sensitive_fields()

    def resolved_order(self) -> tuple[str, ...]:
        self._ensure_open()
        order = self._registry.resolved_order()
        self._logger.debug("plugin_order_resolved", order=list(order))
        return order

    def producers(self) -> tuple[Producer, ...]:
        """Registered producers in resolved order."""

        self.resolved_order()
        return self._registry.ordered()

    def __len__(self) -> int:
        return len(self._registry)

    def __contains__(self, identity: object) -> bool:
        return identity in self._registry

    # Configuration pass

    async def run_config_prompts(
        self,
        config: DossierConfig,
        options: ConfigureOptions | None = None,
    ) -> DossierConfig:
        """Walk every producer's configuration step; return the final configuration."""

        effective_options = options if options is not None else ConfigureOptions()
        current = config
        for producer in self.producers():
            identity = producer.descriptor.identity
            try:
                outcome = await _resolve(producer.configure(current, effective_options))
            except ConfigurationCancelled as exc:
                self._logger.info("plugin_config_cancelled", plugin=identity, reason=exc.reason)
                raise
            except Exception as exc:  # noqa: BLE001
                self._log_config_failure(identity, exc)
                continue

            if isinstance(outcome, Cancelled):
                self._logger.info("plugin_config_cancelled", plugin=identity, reason=outcome.reason)
                raise ConfigurationCancelled(outcome.reason, producer_id=identity)

            if not isinstance(outcome, Completed) or not isinstance(outcome.config, DossierConfig):
                self._log_config_failure(
                    identity,
                    _StepFailure(
                        f"configure returned {type(outcome).__name__}, expected Completed"
                    ),
                )
                continue

            if outcome.config is current:
                continue

            current = outcome.config
            try:
                self._checkpoint(current)
            except Exception as exc:  # noqa: BLE001
                self._log_config_failure(identity, exc)
                continue
            self._logger.info("plugin_config_checkpoint", plugin=identity)

        return current

    # Execution pass

    async def execute(self, config: DossierConfig) -> ExecutionReport:
        """Run every eligible producer once; never raises for producer failures."""

        outputs: dict[str, ProducerOutput] = {}
        fragments: list[ContentFragment] = []
        outcomes: list[ProducerOutcome] = []

        for producer in self.producers():
            descriptor = producer.descriptor
            identity = descriptor.identity
            deps = DependencyView.restricted(outputs, descriptor.needs)

            try:
                eligible = bool(producer.is_eligible(config, deps))
            except Exception as exc:  # noqa: BLE001
                self._logger.warning(
                    "plugin_eligibility_failed",
                    plugin=identity,
                    error=_describe(exc),
                )
                outcomes.append(_outcome(producer, ProducerStatus.FAILED, error=_describe(exc)))
                continue

            if not eligible:
                self._logger.info("plugin_skipped", plugin=identity, available=sorted(deps))
                outcomes.append(_outcome(producer, ProducerStatus.SKIPPED))
                continue

            self._logger.debug("plugin_run_started", plugin=identity)
            try:
                raw = await _resolve(producer.run(config, deps))
                result = _validate_result(identity, raw)
            except Exception as exc:  # noqa: BLE001
                self._logger.warning("plugin_run_failed", plugin=identity, error=_describe(exc))
                outcomes.append(_outcome(producer, ProducerStatus.FAILED, error=_describe(exc)))
                continue

            if result is None:
                self._logger.info("plugin_run_empty", plugin=identity)
                outcomes.append(_outcome(producer, ProducerStatus.EMPTY))
                continue

            fragments.extend(result.fragments)
            if result.output is not None:
                outputs[identity] = result.output
            self._logger.info(
                "plugin_run_completed",
                plugin=identity,
                fragments=len(result.fragments),
                tokens=sum(fragment.size_estimate for fragment in result.fragments),
            )
            outcomes.append(
                _outcome(producer, ProducerStatus.SUCCEEDED, fragment_count=len(result.fragments))
            )

        report = ExecutionReport(
            fragments=tuple(fragments),
            outputs=MappingProxyType(outputs),
            outcomes=tuple(outcomes),
        )
        self._logger.info(
            "execution_completed",
            fragments=len(report.fragments),
            statuses={item.identity: item.status.value for item in report.outcomes},
        )
        return report

    def aggregate(self, fragments: Iterable[ContentFragment]) -> tuple[ContentFragment, ...]:
        return aggregate(fragments)

    # Lifecycle

    @property
    def closed(self) -> bool:
        return self._closed

    def shutdown(self) -> None:
        """Release producer resources. Idempotent."""

        if self._closed:
            return
        self._closed = True
        for producer in self._registry:
            close = getattr(producer, "close", None)
            if not callable(close):
                continue
            try:
                close()
            except Exception as exc:  # noqa: BLE001
                self._logger.warning(
                    "plugin_close_failed",
                    plugin=producer.descriptor.identity,
                    error=_describe(exc),
                )

    def __enter__(self) -> PluginManager:
        self._ensure_open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.shutdown()

    def _ensure_open(self) -> None:
        if self._closed:
            raise PluginManagerClosedError("plugin manager has been shut down")

    def _checkpoint(self, config: DossierConfig) -> None:
        if self._store is not None:
            self._store.save(config)

    def _log_config_failure(self, identity: str, exc: Exception) -> None:
        self._logger.warning("plugin_config_failed", plugin=identity, error=_describe(exc))


async def _resolve(candidate: T | Awaitable[T]) -> T:
    if inspect.isawaitable(candidate):
        return await candidate
    return candidate


def _validate_result(identity: str, raw: object) -> ProducerResult | None:
    if raw is None:
        return None
    if not isinstance(raw, ProducerResult):
        raise _StepFailure(f"run returned {type(raw).__name__}, expected ProducerResult")
    if raw.output is not None and (
        not isinstance(raw.output, ProducerOutput) or raw.output.producer_id != identity
    ):
        raise _StepFailure(
            f"output {type(raw.output).__name__} is not tagged for producer {identity!r}"
        )
    for fragment in raw.fragments:
        if not isinstance(fragment, ContentFragment):
            raise _StepFailure(f"fragment {type(fragment).__name__} is not a ContentFragment")
    return raw


def _outcome(
    producer: Producer,
    status: ProducerStatus,
    *,
    fragment_count: int = 0,
    error: str | None = None,
) -> ProducerOutcome:
    return ProducerOutcome(
        identity=producer.descriptor.identity,
        name=producer.descriptor.name,
        status=status,
        fragment_count=fragment_count,
        error=error,
    )


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


__all__ = [
    "ConfigSink",
    "ExecutionReport",
    "PluginManager",
    "ProducerOutcome",
    "ProducerStatus",
    "aggregate",
]
