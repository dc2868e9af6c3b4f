"""Module entrypoint for ``python -m dossier``."""

from __future__ import annotations

from dossier.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
