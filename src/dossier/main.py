"""Executable CLI entrypoint for ``dossier``."""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

from dossier.config import ConfigLoadError, ConfigStoreError, ConfigValidationError

if TYPE_CHECKING:
    from collections.abc import Sequence


class ExitCode(IntEnum):
    """Process exit-code contract."""

    SUCCESS = 0
    VALIDATION_FAILED = 1
    CONFIG_ERROR = 2
    INTERNAL_ERROR = 4
    INTERRUPTED = 130


_CONFIG_ERRORS = (
    ConfigLoadError,
    ConfigStoreError,
    ConfigValidationError,
    FileNotFoundError,
    NotADirectoryError,
    PermissionError,
    ValueError,
)


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Entrypoint used by ``python -m dossier`` and the console script."""

    # Deferred: the CLI module imports ExitCode from here.
    from dossier.ui.cli import run_cli

    try:
        return _known_or_internal(run_cli(argv))
    except SystemExit as exc:
        return ExitCode.SUCCESS if exc.code is None else _known_or_internal(exc.code)
    except KeyboardInterrupt:
        sys.stderr.write("interrupted\n")
        return int(ExitCode.INTERRUPTED)
    except Exception as exc:  # noqa: BLE001 - CLI boundary normalization.
        if _is_config_error(exc):
            sys.stderr.write(f"error: {str(exc).strip() or type(exc).__name__}\n")
            return int(ExitCode.CONFIG_ERROR)
        traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)
        return int(ExitCode.INTERNAL_ERROR)


def main() -> None:
    """Console-script shim."""

    raise SystemExit(cli_entrypoint())


def _known_or_internal(code: object) -> int:
    if isinstance(code, int) and code in set(ExitCode):
        return int(code)
    return int(ExitCode.INTERNAL_ERROR)


def _is_config_error(exc: BaseException) -> bool:
    current: BaseException | None = exc
    while current is not None:
        if isinstance(current, _CONFIG_ERRORS):
            return True
        current = current.__cause__ or current.__context__
    return False


__all__ = ["ExitCode", "cli_entrypoint", "main"]
