"""
foldstate Kernel — the pure expansion engine.

Three components:
  commands  — constructors for the expansion commands
  reducer   — (state, command) → state  (pure, deterministic)
  scope     — cursor line → Scope (global / section / file / hunk)

Usage:
  state = reducer.new()
  state = reducer.apply(state, commands.toggle_file("unstaged:file.txt"))
"""

from foldstate.kernel import commands, reducer, scope
from foldstate.kernel.reducer import (
    apply,
    apply_all,
    get_file,
    get_section,
    is_commit_expanded,
    is_file_expanded,
    is_hunk_expanded,
    is_section_collapsed,
    new,
    next_visibility_level,
    reduce,
)
from foldstate.kernel.scope import find_parent_section, resolve
from foldstate.kernel.types import (
    COLLAPSED,
    EXPANDED,
    HEADERS,
    FileExpansion,
    LineInfo,
    ReduceResult,
    Scope,
    SectionExpansion,
    SectionInfo,
    State,
)

__all__ = [
    "commands",
    "reducer",
    "scope",
    "new",
    "reduce",
    "apply",
    "apply_all",
    "get_file",
    "get_section",
    "is_file_expanded",
    "is_section_collapsed",
    "is_commit_expanded",
    "is_hunk_expanded",
    "next_visibility_level",
    "resolve",
    "find_parent_section",
    "COLLAPSED",
    "HEADERS",
    "EXPANDED",
    "FileExpansion",
    "SectionExpansion",
    "State",
    "Scope",
    "LineInfo",
    "SectionInfo",
    "ReduceResult",
]
