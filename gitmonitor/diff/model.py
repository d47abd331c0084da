"""Structured unified-diff model.

Splits raw ``git diff`` output into per-file sections and classifies every
line. Parsing is pure: the same text always yields equal, immutable results.
"""

from __future__ import annotations

from dataclasses import dataclass

FILE_HEADER = "file_header"
HEADER = "header"
HUNK = "hunk"
ADDED = "added"
REMOVED = "removed"
CONTEXT = "context"

DIFF_LINE_KINDS = frozenset({FILE_HEADER, HEADER, HUNK, ADDED, REMOVED, CONTEXT})

_SECTION_PREFIXES = ("diff --git ", "diff --cc ", "diff --combined ")


@dataclass(frozen=True)
class DiffLine:
    """One classified diff line.

    ``kind`` is one of the module-level kind constants. Synthetic file headers
    carry ``filename`` plus added/removed counts and use the filename as text.
    """

    kind: str
    text: str
    filename: str = ""
    added: int = 0
    removed: int = 0

    @classmethod
    def file_header(cls, filename: str, added: int, removed: int) -> DiffLine:
        return cls(kind=FILE_HEADER, text=filename, filename=filename, added=added, removed=removed)

    @property
    def is_file_header(self) -> bool:
        return self.kind == FILE_HEADER


@dataclass(frozen=True)
class FileDiff:
    """All diff lines belonging to one file, in original order."""

    filename: str
    added: int
    removed: int
    lines: tuple[DiffLine, ...]

    def header_line(self) -> DiffLine:
        """Return the synthetic collapsible header for this file section."""
        return DiffLine.file_header(self.filename, self.added, self.removed)


def _is_section_start(line: str) -> bool:
    return line.startswith(_SECTION_PREFIXES)


def extract_filename(header: str) -> str:
    """Extract the post-image path from a ``diff --git a/... b/...`` line.

    Combined (merge) headers carry a single path. Falls back to the raw line
    when the header has an unexpected shape.
    """
    if header.startswith("diff --git "):
        rest = header[len("diff --git "):]
        if rest.endswith('"'):
            pos = rest.rfind(' "b/')
            if pos >= 0:
                return rest[pos + 4:-1]
        # The last " b/" wins so paths containing spaces survive.
        pos = rest.rfind(" b/")
        if pos >= 0:
            return rest[pos + 3:]
        return header
    for prefix in ("diff --cc ", "diff --combined "):
        if header.startswith(prefix):
            return header[len(prefix):].strip().strip('"') or header
    return header


def _classify_body_line(line: str) -> str:
    if line.startswith("@@"):
        return HUNK
    if line.startswith("+"):
        return ADDED
    if line.startswith("-"):
        return REMOVED
    return CONTEXT


def build_file_diff(raw_lines: list[str]) -> FileDiff:
    """Build one ``FileDiff`` from the raw lines of a single file section.

    Lines before the first hunk are extended headers (``index``, ``---``,
    ``+++``, mode/rename lines, ``Binary files``). Inside hunks a leading
    ``+``/``-`` marks a change even when the content itself starts with
    ``++`` or ``--``.
    """
    filename = extract_filename(raw_lines[0])
    added = 0
    removed = 0
    lines: list[DiffLine] = []
    in_hunks = False

    for raw in raw_lines:
        if not in_hunks and not raw.startswith("@@"):
            lines.append(DiffLine(kind=HEADER, text=raw))
            continue
        kind = _classify_body_line(raw)
        if kind == HUNK:
            in_hunks = True
        elif kind == ADDED:
            added += 1
        elif kind == REMOVED:
            removed += 1
        lines.append(DiffLine(kind=kind, text=raw))

    return FileDiff(filename=filename, added=added, removed=removed, lines=tuple(lines))


def parse_files(raw: str) -> list[FileDiff]:
    """Parse raw unified diff text into per-file sections.

    A new section starts at every ``diff --git`` (or combined ``diff --cc``)
    line. Text preceding the first section header forms its own section keyed
    by its first line so nothing in the input is silently dropped.
    """
    files: list[FileDiff] = []
    current: list[str] = []

    for line in raw.splitlines():
        if _is_section_start(line) and current:
            files.append(build_file_diff(current))
            current = []
        current.append(line)

    if current:
        files.append(build_file_diff(current))
    return files
