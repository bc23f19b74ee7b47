"""
foldstate Kernel — Shared Types

Data classes used across commands, reducer, and scope resolution.
These are the contracts that bind the kernel together.

Hierarchy is fixed at three levels plus a flat commit set:
- sections: dict[section_key, SectionExpansion]
- files:    dict["section:path", FileExpansion]
- hunks:    per-file dict[hunk_index, bool] (1-based, as displayed)
- commits:  dict[commit_hash, bool]

All maps are sparse: an absent key is in its default state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

# ---------------------------------------------------------------------------
# File expansion modes
# ---------------------------------------------------------------------------

FileMode = Literal["collapsed", "headers", "expanded"]

COLLAPSED: FileMode = "collapsed"
HEADERS: FileMode = "headers"  # @@ lines visible, hunk bodies collapsed
EXPANDED: FileMode = "expanded"

FILE_MODES: set[str] = {COLLAPSED, HEADERS, EXPANDED}

ScopeType = Literal["global", "section", "file", "hunk"]

# ---------------------------------------------------------------------------
# Visibility levels
# ---------------------------------------------------------------------------

MIN_LEVEL = 1
MAX_LEVEL = 4
DEFAULT_LEVEL = 2

# Level policy shared with rendering:
#   1: section headers only
#   2: sections + items, no diffs
#   3: file diffs in headers mode
#   4: everything, including commit details
LEVEL_SECTION_COLLAPSED: dict[int, bool] = {1: True, 2: False, 3: False, 4: False}
LEVEL_FILE_MODE: dict[int, FileMode] = {1: COLLAPSED, 2: COLLAPSED, 3: HEADERS, 4: EXPANDED}
LEVEL_COMMIT_EXPANDED: dict[int, bool] = {1: False, 2: False, 3: False, 4: True}


def clamp_level(level: int) -> int:
    """Clamp a visibility level into [MIN_LEVEL, MAX_LEVEL]."""
    return max(MIN_LEVEL, min(MAX_LEVEL, int(level)))


# ---------------------------------------------------------------------------
# Expansion state
# ---------------------------------------------------------------------------


@dataclass
class FileExpansion:
    """
    Expansion of one file's diff.

    hunks is only meaningful in headers mode; missing indices are collapsed.
    remembered holds the hunk flags saved on the last collapse, so a later
    re-expand can bring the file back to the same headers-mode detail.
    """

    expanded: FileMode = COLLAPSED
    hunks: dict[int, bool] | None = None
    remembered: dict[int, bool] | None = None

    def is_default(self) -> bool:
        return self.expanded == COLLAPSED and self.hunks is None and self.remembered is None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"expanded": self.expanded}
        if self.hunks is not None:
            d["hunks"] = dict(self.hunks)
        if self.remembered is not None:
            d["remembered"] = dict(self.remembered)
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> FileExpansion:
        return cls(
            expanded=d.get("expanded", COLLAPSED),
            hunks=_int_keys(d.get("hunks")),
            remembered=_int_keys(d.get("remembered")),
        )


@dataclass
class SectionExpansion:
    """Collapse flag for a section plus the file states saved when it collapsed."""

    collapsed: bool = False
    remembered_files: dict[str, FileExpansion] | None = None

    def is_default(self) -> bool:
        return not self.collapsed and self.remembered_files is None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"collapsed": self.collapsed}
        if self.remembered_files is not None:
            d["remembered_files"] = {k: f.to_dict() for k, f in self.remembered_files.items()}
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> SectionExpansion:
        remembered = d.get("remembered_files")
        return cls(
            collapsed=bool(d.get("collapsed", False)),
            remembered_files=(
                {k: FileExpansion.from_dict(f) for k, f in remembered.items()} if remembered is not None else None
            ),
        )


@dataclass
class State:
    """
    The whole expansion state of a status display.

    Created once per session with reducer.new() and threaded through
    reducer.apply(). Never mutated by the reducer.
    """

    visibility_level: int = DEFAULT_LEVEL
    files: dict[str, FileExpansion] = field(default_factory=dict)
    sections: dict[str, SectionExpansion] = field(default_factory=dict)
    commits: dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "visibility_level": self.visibility_level,
            "files": {k: f.to_dict() for k, f in self.files.items()},
            "sections": {k: s.to_dict() for k, s in self.sections.items()},
            "commits": dict(self.commits),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> State:
        return cls(
            visibility_level=clamp_level(d.get("visibility_level", DEFAULT_LEVEL)),
            files={k: FileExpansion.from_dict(f) for k, f in d.get("files", {}).items()},
            sections={k: SectionExpansion.from_dict(s) for k, s in d.get("sections", {}).items()},
            commits={k: bool(v) for k, v in d.get("commits", {}).items()},
        )


# ---------------------------------------------------------------------------
# Scope and buffer descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Scope:
    """
    What an operation targets. Finer scopes always carry the coarser keys:
    a hunk scope has section_key, file_key, and hunk_index.
    """

    type: ScopeType = "global"
    section_key: str | None = None
    file_key: str | None = None
    hunk_index: int | None = None


@dataclass(frozen=True)
class LineInfo:
    """Descriptor of one buffer line, as produced by the host's renderer."""

    type: str  # "file", "commit", "stash", "submodule"
    path: str | None = None
    section: str | None = None
    hunk_index: int | None = None
    is_hunk_header: bool = False


@dataclass(frozen=True)
class SectionInfo:
    """Descriptor of a section header line."""

    name: str
    section: str


# ---------------------------------------------------------------------------
# Reduce result
# ---------------------------------------------------------------------------


@dataclass
class ReduceResult:
    """
    Result of applying one command to a state.
    The reducer never throws. It always returns one of these.

    On rejection, state is an untouched copy of the input and reason is a
    "CODE: message" string.
    """

    state: State
    applied: bool
    reason: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _int_keys(d: dict[Any, bool] | None) -> dict[int, bool] | None:
    # JSON turns hunk indices into strings
    if d is None:
        return None
    return {int(k): bool(v) for k, v in d.items()}
