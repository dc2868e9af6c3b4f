"""
dossier plugin engine public API.

File: src/dossier/plugins/__init__.py

Purpose
- Export the producer contract, the typed output view, and the plugin manager.
- Built-in producers live in ``dossier.producers``; ``build_default_manager`` is there.
"""

from dossier.plugins.base import (
    Cancelled,
    CircularDependencyError,
    Completed,
    ConfigurationCancelled,
    ConfigureOptions,
    ConfigureOutcome,
    ContentFragment,
    DuplicateIdentityError,
    PluginError,
    PluginManagerClosedError,
    Producer,
    ProducerDescriptor,
    ProducerResult,
    RunResult,
    estimate_tokens,
)
from dossier.plugins.manager import (
    ConfigSink,
    ExecutionReport,
    PluginManager,
    ProducerOutcome,
    ProducerStatus,
    aggregate,
)
from dossier.plugins.outputs import DependencyView, ProducerOutput
from dossier.plugins.registry import ProducerRegistry
from dossier.plugins.resolver import resolve_order

__all__ = [
    "Cancelled",
    "CircularDependencyError",
    "Completed",
    "ConfigSink",
    "ConfigurationCancelled",
    "ConfigureOptions",
    "ConfigureOutcome",
    "ContentFragment",
    "DependencyView",
    "DuplicateIdentityError",
    "ExecutionReport",
    "PluginError",
    "PluginManager",
    "PluginManagerClosedError",
    "Producer",
    "ProducerDescriptor",
    "ProducerOutcome",
    "ProducerOutput",
    "ProducerRegistry",
    "ProducerResult",
    "ProducerStatus",
    "RunResult",
    "aggregate",
    "estimate_tokens",
    "resolve_order",
]
