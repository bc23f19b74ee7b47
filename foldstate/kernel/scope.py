"""
foldstate Kernel — Scope Resolution

Pure functions that decide what an operation targets, based on the cursor
position and the buffer's line tables.

The host's renderer owns the tables:
  line_map       {line: LineInfo}     — file, commit, stash, ... lines
  section_lines  {line: SectionInfo}  — section header lines

Entries may be LineInfo/SectionInfo dataclasses or plain dicts with the
same keys.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from foldstate.kernel.types import Scope

# ---------------------------------------------------------------------------
# Scope constructors
# ---------------------------------------------------------------------------


def global_scope() -> Scope:
    return Scope(type="global")


def section_scope(section_key: str) -> Scope:
    return Scope(type="section", section_key=section_key)


def file_scope(section_key: str, file_key: str) -> Scope:
    return Scope(type="file", section_key=section_key, file_key=file_key)


def hunk_scope(section_key: str, file_key: str, hunk_index: int) -> Scope:
    return Scope(type="hunk", section_key=section_key, file_key=file_key, hunk_index=hunk_index)


def make_file_key(section_key: str, path: str) -> str:
    """
    The "section:path" key files are stored under.

    The same path in two sections gets two keys:
      make_file_key("staged", "lua/a.lua")   → "staged:lua/a.lua"
      make_file_key("unstaged", "lua/a.lua") → "unstaged:lua/a.lua"
    """
    return f"{section_key}:{path}"


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def resolve(
    line: int,
    line_map: Mapping[int, Any],
    section_lines: Mapping[int, Any],
) -> Scope:
    """
    Scope for the cursor line.

    Priority:
      1. section header     → section scope
      2. file line          → hunk scope on a hunk header, else file scope
      3. anything else      → global scope
    """
    section_info = section_lines.get(line)
    if section_info is not None:
        return section_scope(_field(section_info, "section"))

    line_info = line_map.get(line)
    if line_info is not None and _field(line_info, "type") == "file":
        section_key = _field(line_info, "section")
        file_key = make_file_key(section_key, _field(line_info, "path"))

        hunk_index = _field(line_info, "hunk_index")
        if _field(line_info, "is_hunk_header") and hunk_index is not None:
            return hunk_scope(section_key, file_key, hunk_index)
        return file_scope(section_key, file_key)

    return global_scope()


def find_parent_section(line: int, section_lines: Mapping[int, Any]) -> tuple[str | None, int | None]:
    """
    Closest section header at or above line.
    Returns (section_key, header_line), or (None, None) above the first header.
    """
    best_section: str | None = None
    best_line: int | None = None

    for section_line, section_info in section_lines.items():
        if section_line <= line and (best_line is None or section_line > best_line):
            best_section = _field(section_info, "section")
            best_line = section_line

    return best_section, best_line


def _field(info: Any, name: str) -> Any:
    if isinstance(info, Mapping):
        return info.get(name)
    return getattr(info, name, None)
