from __future__ import annotations

import urllib.parse
from typing import Iterator, List

from reflectscan.errors import InputError


def _clean_lines(filename: str) -> Iterator[tuple]:
    try:
        with open(filename, "r", encoding="utf-8", errors="ignore") as f:
            for line_num, raw in enumerate(f, 1):
                line = raw.strip()
                # skip blanks and comments
                if not line or line.startswith("#"):
                    continue
                yield line_num, line
    except OSError as e:
        raise InputError(f"opening {filename}: {e}") from e


def valid_url(url: str) -> bool:
    try:
        p = urllib.parse.urlparse(url)
    except ValueError:
        return False
    return p.scheme in ("http", "https") and bool(p.netloc)


def iter_paths(filename: str) -> Iterator[str]:
    """Yield target URLs one at a time instead of reading the whole file."""
    for line_num, line in _clean_lines(filename):
        if not valid_url(line):
            raise InputError(f"invalid URL at line {line_num}: {line}")
        yield line


def load_paths(filename: str) -> List[str]:
    paths = list(iter_paths(filename))
    if not paths:
        raise InputError("no valid paths found in file")
    return paths


def load_parameters(filename: str) -> List[str]:
    parameters: List[str] = []
    for _, line in _clean_lines(filename):
        if "=" in line or "&" in line:
            raise InputError(f"invalid parameter name: {line} (should not contain = or &)")
        parameters.append(line)
    if not parameters:
        raise InputError("no valid parameters found in file")
    return parameters
