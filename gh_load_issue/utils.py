"""Utility helpers for output path handling."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

OUTPUT_SUFFIXES = {".md", ".json"}


def resolve_output_location(output: Optional[str], issue_number: int) -> Tuple[Path, str]:
    """Split ``--output`` into a directory and a base file name.

    ``x.md`` and ``x.json`` name the output file (the suffix is re-derived
    from the format), any other suffix is kept as part of the base name, and
    a value without a suffix is treated as a directory.
    """
    default_name = f"issue-{issue_number}"
    if not output:
        return Path.cwd(), default_name
    path = Path(output)
    if path.suffix in OUTPUT_SUFFIXES:
        return path.parent, path.stem
    if path.suffix:
        return path.parent, path.name
    return path, default_name
