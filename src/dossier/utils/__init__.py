"""Utility exports."""

from dossier.utils.fs import PathLike, atomic_write

__all__ = ["PathLike", "atomic_write"]
