"""
foldstate Kernel — Command Construction

Commands are data describing what should happen to expansion state.
Factory functions build them; they validate nothing. The reducer decides
what a command means for a given state.

Each kind is a frozen dataclass carrying only its own fields and a `type`
tag, so the reducer can dispatch on the tag and hosts can log commands as
plain dicts.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar

from foldstate.kernel.types import FileExpansion, Scope

# ---------------------------------------------------------------------------
# Command kinds
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VisibilityContext:
    """Bulk targets for set_visibility_level beyond the scoped entity."""

    sections: tuple[str, ...] = ()
    file_keys: tuple[str, ...] = ()
    commit_hashes: tuple[str, ...] = ()
    total_hunks: int | None = None  # for hunk scope on a fully expanded file


@dataclass(frozen=True)
class ToggleFile:
    type: ClassVar[str] = "toggle_file"
    file_key: str


@dataclass(frozen=True)
class ToggleSection:
    type: ClassVar[str] = "toggle_section"
    section_key: str


@dataclass(frozen=True)
class ToggleHunk:
    type: ClassVar[str] = "toggle_hunk"
    file_key: str
    hunk_index: int
    total_hunks: int | None = None


@dataclass(frozen=True)
class SetFileExpansion:
    type: ClassVar[str] = "set_file_expansion"
    file_key: str
    value: str


@dataclass(frozen=True)
class SetVisibilityLevel:
    type: ClassVar[str] = "set_visibility_level"
    level: int
    scope: Scope | None = None
    context: VisibilityContext | None = None


@dataclass(frozen=True)
class ToggleAllSections:
    type: ClassVar[str] = "toggle_all_sections"
    sections: tuple[str, ...]
    any_collapsed: bool | None = None
    # Caller's view of file states; the snapshot source when collapsing
    current_files: Mapping[str, FileExpansion] | None = field(default=None, compare=False)


@dataclass(frozen=True)
class ToggleCommit:
    type: ClassVar[str] = "toggle_commit"
    commit_hash: str


@dataclass(frozen=True)
class Reset:
    type: ClassVar[str] = "reset"


@dataclass(frozen=True)
class UnknownCommand:
    """A command tag this kernel does not know. The reducer ignores it."""

    type: str
    payload: Mapping[str, Any] = field(default_factory=dict, compare=False)


Command = (
    ToggleFile
    | ToggleSection
    | ToggleHunk
    | SetFileExpansion
    | SetVisibilityLevel
    | ToggleAllSections
    | ToggleCommit
    | Reset
    | UnknownCommand
)

COMMAND_TYPES: dict[str, type] = {
    cls.type: cls
    for cls in (
        ToggleFile,
        ToggleSection,
        ToggleHunk,
        SetFileExpansion,
        SetVisibilityLevel,
        ToggleAllSections,
        ToggleCommit,
        Reset,
    )
}

# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def toggle_file(file_key: str) -> ToggleFile:
    """Toggle a file between collapsed and its expanded (or remembered headers) state."""
    return ToggleFile(file_key=file_key)


def toggle_section(section_key: str) -> ToggleSection:
    """Toggle a section's collapse, e.g. "staged" or "unstaged"."""
    return ToggleSection(section_key=section_key)


def toggle_hunk(file_key: str, hunk_index: int, total_hunks: int | None = None) -> ToggleHunk:
    """
    Toggle one hunk of a file.

    total_hunks is needed when the file is fully expanded, so the implicit
    "all hunks open" can be written out before one of them closes.
    """
    return ToggleHunk(file_key=file_key, hunk_index=hunk_index, total_hunks=total_hunks)


def set_file_expansion(file_key: str, value: str) -> SetFileExpansion:
    return SetFileExpansion(file_key=file_key, value=value)


def set_visibility_level(
    level: int,
    scope: Scope | None = None,
    context: VisibilityContext | Mapping[str, Any] | None = None,
) -> SetVisibilityLevel:
    """
    Set a visibility level (1-4) for a scope.

    A global scope (or no scope) changes the session level. Any other scope
    applies the level's effect to the scoped entity and the context lists.
    """
    if context is not None and not isinstance(context, VisibilityContext):
        context = VisibilityContext(
            sections=tuple(context.get("sections") or ()),
            file_keys=tuple(context.get("file_keys") or ()),
            commit_hashes=tuple(context.get("commit_hashes") or ()),
            total_hunks=context.get("total_hunks"),
        )
    return SetVisibilityLevel(level=level, scope=scope, context=context)


def toggle_all_sections(
    sections: Iterable[str],
    any_collapsed: bool | None = None,
    current_files: Mapping[str, FileExpansion] | None = None,
) -> ToggleAllSections:
    """
    Toggle all listed sections at once (Shift-Tab).

    any_collapsed is the caller's reading of the display; when omitted the
    reducer works it out from state.
    """
    return ToggleAllSections(sections=tuple(sections), any_collapsed=any_collapsed, current_files=current_files)


def toggle_commit(commit_hash: str) -> ToggleCommit:
    return ToggleCommit(commit_hash=commit_hash)


def reset() -> Reset:
    return Reset()


# ---------------------------------------------------------------------------
# Plain-dict form
# ---------------------------------------------------------------------------


def command_to_dict(cmd: Command) -> dict[str, Any]:
    """
    Render a command as a JSON-friendly dict for host logs.
    None fields are omitted; scopes and contexts become nested dicts.
    """
    if isinstance(cmd, UnknownCommand):
        return {"type": cmd.type, **dict(cmd.payload)}

    d: dict[str, Any] = {"type": cmd.type}
    for f in fields(cmd):
        value = getattr(cmd, f.name)
        if value is None:
            continue
        if isinstance(value, (Scope, VisibilityContext)):
            value = {k.name: _plain(getattr(value, k.name)) for k in fields(value)}
        elif f.name == "current_files":
            value = {k: fe.to_dict() for k, fe in value.items()}
        d[f.name] = _plain(value)
    return d


def command_from_dict(d: Mapping[str, Any]) -> Command:
    """
    Inverse of command_to_dict. Unknown tags come back as UnknownCommand
    rather than failing, so newer hosts can talk to older kernels.
    """
    kind = d.get("type")
    payload = {k: v for k, v in d.items() if k != "type"}

    if kind == ToggleFile.type:
        return toggle_file(payload.get("file_key", ""))
    if kind == ToggleSection.type:
        return toggle_section(payload.get("section_key", ""))
    if kind == ToggleHunk.type:
        return toggle_hunk(payload.get("file_key", ""), payload.get("hunk_index", 0), payload.get("total_hunks"))
    if kind == SetFileExpansion.type:
        return set_file_expansion(payload.get("file_key", ""), payload.get("value", ""))
    if kind == SetVisibilityLevel.type:
        scope = payload.get("scope")
        return set_visibility_level(
            payload.get("level", 0),
            Scope(**scope) if scope is not None else None,
            payload.get("context"),
        )
    if kind == ToggleAllSections.type:
        current = payload.get("current_files")
        return toggle_all_sections(
            payload.get("sections", ()),
            payload.get("any_collapsed"),
            {k: FileExpansion.from_dict(f) for k, f in current.items()} if current is not None else None,
        )
    if kind == ToggleCommit.type:
        return toggle_commit(payload.get("commit_hash", ""))
    if kind == Reset.type:
        return reset()

    return UnknownCommand(type=str(kind), payload=payload)


def _plain(value: Any) -> Any:
    if isinstance(value, tuple):
        return list(value)
    return value
