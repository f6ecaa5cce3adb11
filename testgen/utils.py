# File: testgen/utils.py
"""
testgen - Utility Functions & Helpers
======================================
String transformation, ordered-set and file I/O helpers used throughout
the generation pipeline.

- Naming conversions are cached with ``@lru_cache(maxsize=None)``; the same
  short names are converted once per route.
- File I/O helpers use atomic write-to-temp then rename.
"""

from __future__ import annotations

import functools
import hashlib
import logging
import os
import re
import shutil
import tempfile
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("testgen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")


# ---------------------------------------------------------------------------
# Cached string transformation functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def lcfirst(name: str) -> str:
    """
    Lower-case only the first character.

    Examples:
        >>> lcfirst("Post")
        'post'
        >>> lcfirst("BlogPost")
        'blogPost'
    """
    if not name:
        return ""
    return name[0].lower() + name[1:]


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("BlogPost")
        'blog_post'
        >>> to_snake_case("getHTTPResponse")
        'get_http_response'
        >>> to_snake_case("already_snake")
        'already_snake'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


# Irregular nouns common in table names
_IRREGULAR_PLURALS: Dict[str, str] = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "tooth": "teeth",
    "foot": "feet",
    "datum": "data",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "axis": "axes",
    "crisis": "crises",
    "analysis": "analyses",
    "status": "statuses",
    "address": "addresses",
}


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    Naive English pluralisation, good enough for default table names.

    Only the last snake_case segment is inflected, so ``sales_person``
    becomes ``sales_people`` the way the framework names tables.

    Examples:
        >>> to_plural("category")
        'categories'
        >>> to_plural("blog_post")
        'blog_posts'
    """
    if not name:
        return ""

    head, sep, word = name.rpartition("_")
    lower: str = word.lower()

    if lower in _IRREGULAR_PLURALS:
        plural: str = _IRREGULAR_PLURALS[lower]
        if word[0].isupper():
            plural = plural[0].upper() + plural[1:]
        return head + sep + plural

    # Already plural-looking (very naive)
    if lower.endswith("s") and not lower.endswith("ss"):
        return name

    if lower.endswith(("sh", "ch", "x", "z", "ss")):
        return name + "es"
    if lower.endswith("y") and len(word) > 1 and lower[-2] not in "aeiou":
        return name[:-1] + "ies"
    if lower.endswith("fe"):
        return name[:-2] + "ves"
    if lower.endswith("f"):
        return name[:-1] + "ves"
    if lower.endswith("o") and len(word) > 1 and lower[-2] not in "aeiou":
        return name + "es"

    return name + "s"


def class_basename(qualified_name: str) -> str:
    """
    Return the last segment of a backslash-separated PHP class name.

        >>> class_basename("App\\\\Models\\\\Post")
        'Post'
    """
    return qualified_name.rstrip("\\").rsplit("\\", 1)[-1]


# ---------------------------------------------------------------------------
# Ordered collections
# ---------------------------------------------------------------------------


def ordered_unique(items: Iterable[str]) -> List[str]:
    """De-duplicate *items* keeping first-seen order."""
    return list(dict.fromkeys(items))


# ---------------------------------------------------------------------------
# Indentation helpers
# ---------------------------------------------------------------------------


def indent_lines(lines: Sequence[str], level: int = 1, size: int = 4) -> List[str]:
    """Indent a list of lines, returning a new list. Blank lines stay blank."""
    prefix: str = " " * (level * size)
    return [prefix + line if line.strip() else line for line in lines]


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def write_file(path: Path, content: str, atomic: bool = True) -> int:
    """
    Write *content* to *path*.

    When *atomic* is True, writes to a temporary file in the same directory
    first then renames it into place.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    encoded: bytes = content.encode("utf-8")
    byte_count: int = len(encoded)

    if atomic:
        fd: int
        tmp_path: str
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(encoded)
            shutil.move(tmp_path, str(path))
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    else:
        path.write_bytes(encoded)

    logger.debug("Wrote %d bytes to %s", byte_count, path)
    return byte_count


def clean_directory(path: Path, keep_git: bool = True) -> None:
    """
    Remove all contents of a directory without removing the directory itself.

    If *keep_git* is True, ``.git`` and ``.gitignore`` are preserved.
    """
    if not path.exists():
        return

    for item in path.iterdir():
        if keep_git and item.name in {".git", ".gitignore"}:
            continue
        if item.is_dir():
            shutil.rmtree(item)
        else:
            item.unlink()

    logger.debug("Cleaned directory: %s (keep_git=%s)", path, keep_git)


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Context-manager timer for profiling pipeline steps.

    Usage:
        with Timer("render tests") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# PHP import block
# ---------------------------------------------------------------------------


def build_use_block(namespaces: Iterable[str]) -> str:
    """
    Build a PHP ``use`` block from fully-qualified class names.

    Order is preserved and duplicates dropped.

        >>> build_use_block(["Tests\\\\TestCase", "App\\\\Models\\\\Post"])
        'use Tests\\\\TestCase;\\nuse App\\\\Models\\\\Post;'
    """
    lines: List[str] = [
        f"use {name};" for name in ordered_unique(n.lstrip("\\") for n in namespaces)
    ]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "lcfirst",
    "to_snake_case",
    "to_plural",
    "class_basename",
    "ordered_unique",
    "indent_lines",
    "ensure_directory",
    "write_file",
    "clean_directory",
    "sha256_hex",
    "count_lines",
    "Timer",
    "build_use_block",
]

logger.debug("testgen.utils loaded — %d public symbols.", len(__all__))
