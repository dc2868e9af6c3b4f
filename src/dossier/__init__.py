"""
dossier — plugin-orchestrated work-history document builder.

File: src/dossier/__init__.py

Purpose
- Package root. Exposes the version and the small public surface of the plugin engine.

Import boundary rules
- No side effects at import time (no config loading, no logging init).
- Built-in producers and the CLI are imported lazily by their own entrypoints.
"""

from __future__ import annotations

__version__ = "0.3.0"

__all__ = ["__version__"]
