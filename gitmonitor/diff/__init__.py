"""Unified-diff parsing into per-file sections."""

from .model import (
    ADDED,
    CONTEXT,
    DIFF_LINE_KINDS,
    FILE_HEADER,
    HEADER,
    HUNK,
    REMOVED,
    DiffLine,
    FileDiff,
    build_file_diff,
    extract_filename,
    parse_files,
)

__all__ = [
    "ADDED",
    "CONTEXT",
    "DIFF_LINE_KINDS",
    "FILE_HEADER",
    "HEADER",
    "HUNK",
    "REMOVED",
    "DiffLine",
    "FileDiff",
    "build_file_diff",
    "extract_filename",
    "parse_files",
]
