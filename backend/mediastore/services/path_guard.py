"""Confinement check for every path computed under the storage root."""
import os
from pathlib import Path
from typing import Union

from mediastore.errors import PathError

PathLike = Union[str, os.PathLike]


def validate_path(root: PathLike, target: PathLike) -> Path:
    """Return the absolute target if it stays under root, else raise PathError.

    Both paths are made absolute and normalized lexically before comparison.
    The root itself counts as inside.
    """
    abs_root = os.path.normpath(os.path.abspath(root))
    abs_target = os.path.normpath(os.path.abspath(target))

    try:
        rel = os.path.relpath(abs_target, abs_root)
    except ValueError as e:
        # Different drive on Windows
        raise PathError("path traversal detected", operation="validate_path", identifier=str(target), cause=e)

    if os.path.isabs(rel) or os.pardir in Path(rel).parts:
        raise PathError("path traversal detected", operation="validate_path", identifier=str(target))

    return Path(abs_target)


def resolve_under_root(root: PathLike, relative: str) -> Path:
    """Join a stored relative path onto root and guard the result."""
    if not relative or os.path.isabs(relative) or relative.startswith(("/", "\\")):
        raise PathError("stored path must be relative", operation="resolve_path", identifier=relative)
    return validate_path(root, Path(root) / Path(*relative.split("/")))
