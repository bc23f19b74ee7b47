"""
foldstate Kernel — Reducer

Pure function: (state, command) → ReduceResult
No side effects. No IO. Deterministic.

apply(state, command) is the everyday entry point and returns just the new
state. reduce() additionally reports whether the command took effect.
Either way the input state is never modified: every transition starts from
a deep copy.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from foldstate import config
from foldstate.kernel.commands import (
    Command,
    SetFileExpansion,
    SetVisibilityLevel,
    ToggleAllSections,
    ToggleCommit,
    ToggleFile,
    ToggleHunk,
    ToggleSection,
    UnknownCommand,
    VisibilityContext,
)
from foldstate.kernel.types import (
    COLLAPSED,
    EXPANDED,
    FILE_MODES,
    HEADERS,
    LEVEL_COMMIT_EXPANDED,
    LEVEL_FILE_MODE,
    LEVEL_SECTION_COLLAPSED,
    MAX_LEVEL,
    FileExpansion,
    ReduceResult,
    SectionExpansion,
    State,
    clamp_level,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def new(visibility_level: int | None = None) -> State:
    """
    The initial state of a session: nothing expanded beyond the defaults.
    The level defaults to FOLDSTATE_VISIBILITY_LEVEL (2 unless configured).
    """
    if visibility_level is None:
        visibility_level = config.settings.VISIBILITY_LEVEL
    return State(visibility_level=clamp_level(visibility_level))


def reduce(state: State, cmd: Command) -> ReduceResult:
    """
    Apply one command to the current state.
    Returns new state + applied flag + rejection reason.

    Pure function. The input state is never modified; even a rejected or
    unknown command returns a copy.
    """
    kind = getattr(cmd, "type", None)
    handler = None if isinstance(cmd, UnknownCommand) else _HANDLERS.get(kind)
    if handler is None:
        logger.debug("reducer: ignoring unknown command %r", kind)
        return _reject(_copy_state(state), f"UNKNOWN_COMMAND: {kind}")

    # Deep copy so we never mutate the input
    new_state = _copy_state(state)
    result = handler(new_state, cmd)
    if result.applied:
        _prune(result.state)
    else:
        logger.debug("reducer: %s rejected: %s", kind, result.reason)
    return result


def apply(state: State, cmd: Command) -> State:
    """Apply one command and return the new state. Never raises."""
    return reduce(state, cmd).state


def apply_all(state: State, commands: Iterable[Command]) -> State:
    """
    Apply a sequence of commands.
    apply_all(s, [c1, c2]) == apply(apply(s, c1), c2)
    """
    for cmd in commands:
        state = apply(state, cmd)
    return state


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def get_file(state: State, file_key: str) -> FileExpansion:
    """File expansion, or the collapsed default when not stored."""
    return state.files.get(file_key) or FileExpansion()


def get_section(state: State, section_key: str) -> SectionExpansion:
    """Section expansion, or the expanded default when not stored."""
    return state.sections.get(section_key) or SectionExpansion()


def is_file_expanded(state: State, file_key: str) -> bool:
    """True in headers mode and when fully expanded."""
    return get_file(state, file_key).expanded in (HEADERS, EXPANDED)


def is_section_collapsed(state: State, section_key: str) -> bool:
    return get_section(state, section_key).collapsed


def is_commit_expanded(state: State, commit_hash: str) -> bool:
    return state.commits.get(commit_hash, False)


def is_hunk_expanded(state: State, file_key: str, hunk_index: int) -> bool:
    file = get_file(state, file_key)
    if file.expanded == EXPANDED:
        return True
    if file.expanded == HEADERS:
        return bool((file.hunks or {}).get(hunk_index, False))
    return False


def next_visibility_level(level: int) -> int:
    """Cycle 1 → 2 → 3 → 4 → 1."""
    return clamp_level(level) % MAX_LEVEL + 1


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _copy_state(state: State) -> State:
    return State(
        visibility_level=state.visibility_level,
        files=copy.deepcopy(state.files),
        sections=copy.deepcopy(state.sections),
        commits=dict(state.commits),
    )


def _reject(state: State, reason: str) -> ReduceResult:
    return ReduceResult(state=state, applied=False, reason=reason)


def _ok(state: State) -> ReduceResult:
    return ReduceResult(state=state, applied=True)


def _prune(state: State) -> None:
    """Drop entries equal to their default so maps hold only exceptions."""
    state.files = {k: f for k, f in state.files.items() if not f.is_default()}
    state.sections = {k: s for k, s in state.sections.items() if not s.is_default()}
    state.commits = {k: v for k, v in state.commits.items() if v}


def _key_error(file_key: str) -> str | None:
    if config.settings.STRICT_KEYS and ":" not in file_key:
        return f"MALFORMED_KEY: '{file_key}' is not a 'section:path' key"
    return None


def _section_prefix(section_key: str) -> str:
    return section_key + ":"


def _stored_section_files(state: State, section_key: str) -> list[str]:
    """File keys of a section, including those held in its memory while collapsed."""
    prefix = _section_prefix(section_key)
    keys = [k for k in state.files if k.startswith(prefix)]
    remembered = get_section(state, section_key).remembered_files or {}
    keys.extend(k for k in remembered if k not in keys)
    return keys


def _file_entry(state: State, file_key: str) -> FileExpansion:
    """Stored file entry, created on first touch."""
    return state.files.setdefault(file_key, FileExpansion())


def _section_entry(state: State, section_key: str) -> SectionExpansion:
    return state.sections.setdefault(section_key, SectionExpansion())


def _collapse_file(file: FileExpansion) -> None:
    """Remember hunk detail, then collapse."""
    if file.expanded == HEADERS:
        file.remembered = dict(file.hunks or {})
    elif file.expanded == EXPANDED and file.hunks is not None:
        file.remembered = dict(file.hunks)
    file.expanded = COLLAPSED
    file.hunks = None


def _take_section_files(state: State, section_key: str, source: Mapping[str, FileExpansion] | None = None) -> None:
    """
    Move the section's file states into its memory and out of `files`.
    source overrides where the snapshot is read from (the caller's view).
    """
    prefix = _section_prefix(section_key)
    if source is None:
        source = state.files
    snapshot = {k: copy.deepcopy(f) for k, f in source.items() if k.startswith(prefix) and not f.is_default()}

    for key in [k for k in state.files if k.startswith(prefix)]:
        del state.files[key]

    section = _section_entry(state, section_key)
    section.remembered_files = snapshot or None
    section.collapsed = True


def _restore_section_files(state: State, section_key: str) -> None:
    """
    Move the section's memory back into `files`. An entry written for a
    hidden file while the section was collapsed is newer and wins; one that
    was pruned back to the default cannot be told apart and memory wins.
    """
    section = _section_entry(state, section_key)
    for key, file in (section.remembered_files or {}).items():
        if key not in state.files:
            state.files[key] = copy.deepcopy(file)
    section.remembered_files = None
    section.collapsed = False


def _restore_hunks(file: FileExpansion) -> None:
    """Headers mode with the hunk detail the file had before collapsing."""
    file.expanded = HEADERS
    file.hunks = file.remembered
    file.remembered = None


def _apply_level_to_file(state: State, file_key: str, level: int) -> None:
    mode = LEVEL_FILE_MODE[level]
    file = _file_entry(state, file_key)
    if mode == COLLAPSED:
        if file.expanded != COLLAPSED:
            _collapse_file(file)
        return
    if mode == HEADERS and file.expanded != HEADERS and file.remembered is not None:
        _restore_hunks(file)
        return
    if mode == EXPANDED and file.expanded == HEADERS and file.hunks is not None:
        file.remembered = dict(file.hunks)
    # Otherwise a uniform view: no per-hunk exceptions
    file.expanded = mode
    file.hunks = None


def _apply_level_to_commits(state: State, commit_hashes: Iterable[str], level: int) -> None:
    for commit_hash in commit_hashes:
        state.commits[commit_hash] = LEVEL_COMMIT_EXPANDED[level]


def _apply_level_to_section(state: State, section_key: str, level: int) -> None:
    collapsed = is_section_collapsed(state, section_key)
    if LEVEL_SECTION_COLLAPSED[level]:
        if not collapsed:
            _take_section_files(state, section_key)
    elif collapsed:
        _restore_section_files(state, section_key)


def _apply_level_bulk(
    state: State,
    level: int,
    sections: Iterable[str],
    file_keys: Iterable[str],
    commit_hashes: Iterable[str],
) -> None:
    sections = list(sections)
    if LEVEL_SECTION_COLLAPSED[level]:
        # Files collapse before their sections, so section memory holds them collapsed
        for key in file_keys:
            _apply_level_to_file(state, key, level)
        _apply_level_to_commits(state, commit_hashes, level)
        for section_key in sections:
            _apply_level_to_section(state, section_key, level)
        return

    # Sections restore their memory first, then the level overrides the files
    for section_key in sections:
        _apply_level_to_section(state, section_key, level)
    for key in file_keys:
        _apply_level_to_file(state, key, level)
    _apply_level_to_commits(state, commit_hashes, level)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _handle_reset(state: State, cmd: Any) -> ReduceResult:
    return _ok(State(visibility_level=state.visibility_level))


def _handle_toggle_file(state: State, cmd: ToggleFile) -> ReduceResult:
    error = _key_error(cmd.file_key)
    if error:
        return _reject(state, error)

    file = _file_entry(state, cmd.file_key)
    if file.expanded != COLLAPSED:
        _collapse_file(file)
    elif file.remembered is not None:
        _restore_hunks(file)
    else:
        file.expanded = EXPANDED
    return _ok(state)


def _handle_toggle_section(state: State, cmd: ToggleSection) -> ReduceResult:
    if is_section_collapsed(state, cmd.section_key):
        _restore_section_files(state, cmd.section_key)
    else:
        _take_section_files(state, cmd.section_key)
    return _ok(state)


def _handle_toggle_hunk(state: State, cmd: ToggleHunk) -> ReduceResult:
    error = _key_error(cmd.file_key)
    if error:
        return _reject(state, error)

    current = get_file(state, cmd.file_key)
    if current.expanded == COLLAPSED:
        return _reject(state, f"FILE_COLLAPSED: '{cmd.file_key}' has no visible hunks")

    if current.expanded == EXPANDED:
        if cmd.total_hunks is None:
            return _reject(state, f"MISSING_TOTAL_HUNKS: '{cmd.file_key}' is fully expanded")
        file = _file_entry(state, cmd.file_key)
        file.hunks = {i: True for i in range(1, cmd.total_hunks + 1)}
        file.hunks[cmd.hunk_index] = False
        file.expanded = HEADERS
        return _ok(state)

    file = _file_entry(state, cmd.file_key)
    hunks = dict(file.hunks or {})
    hunks[cmd.hunk_index] = not hunks.get(cmd.hunk_index, False)
    file.hunks = hunks
    return _ok(state)


def _handle_set_file_expansion(state: State, cmd: SetFileExpansion) -> ReduceResult:
    error = _key_error(cmd.file_key)
    if error:
        return _reject(state, error)
    if cmd.value not in FILE_MODES:
        return _reject(state, f"INVALID_VALUE: '{cmd.value}' is not one of {sorted(FILE_MODES)}")

    file = _file_entry(state, cmd.file_key)
    if cmd.value == COLLAPSED:
        if file.expanded != COLLAPSED:
            _collapse_file(file)
    else:
        file.expanded = cmd.value
    return _ok(state)


def _handle_set_visibility_level(state: State, cmd: SetVisibilityLevel) -> ReduceResult:
    level = clamp_level(cmd.level)
    scope = cmd.scope
    context = cmd.context or VisibilityContext()

    if scope is not None and scope.type != "global" and scope.file_key:
        error = _key_error(scope.file_key)
        if error:
            return _reject(state, error)

    if scope is None or scope.type == "global":
        state.visibility_level = level
        _apply_level_bulk(state, level, context.sections, context.file_keys, context.commit_hashes)
        return _ok(state)

    if scope.type == "section":
        sections = [scope.section_key, *[s for s in context.sections if s != scope.section_key]]
        file_keys = list(context.file_keys)
        if not file_keys:
            # Without a file list from the host, use the files the state knows about
            file_keys = _stored_section_files(state, scope.section_key)
        _apply_level_bulk(state, level, sections, file_keys, context.commit_hashes)
        return _ok(state)

    if scope.type == "file":
        _apply_level_to_file(state, scope.file_key, level)
        return _ok(state)

    if scope.type == "hunk":
        return _apply_level_to_hunk(state, scope.file_key, scope.hunk_index, level, context.total_hunks)

    return _reject(state, f"UNKNOWN_SCOPE: {scope.type}")


def _apply_level_to_hunk(
    state: State, file_key: str, hunk_index: int, level: int, total_hunks: int | None
) -> ReduceResult:
    show = level >= MAX_LEVEL
    current = get_file(state, file_key)

    if current.expanded == EXPANDED:
        if show:
            return _ok(state)
        if total_hunks is None:
            return _reject(state, f"MISSING_TOTAL_HUNKS: '{file_key}' is fully expanded")
        file = _file_entry(state, file_key)
        file.hunks = {i: True for i in range(1, total_hunks + 1)}
        file.hunks[hunk_index] = False
        file.expanded = HEADERS
        return _ok(state)

    if current.expanded == COLLAPSED:
        if not show:
            return _reject(state, f"FILE_COLLAPSED: '{file_key}' has no visible hunks")
        file = _file_entry(state, file_key)
        if file.remembered is not None:
            _restore_hunks(file)
        file.expanded = HEADERS

    file = _file_entry(state, file_key)
    hunks = dict(file.hunks or {})
    hunks[hunk_index] = show
    file.hunks = hunks
    return _ok(state)


def _handle_toggle_all_sections(state: State, cmd: ToggleAllSections) -> ReduceResult:
    any_collapsed = cmd.any_collapsed
    if any_collapsed is None:
        any_collapsed = any(is_section_collapsed(state, s) for s in cmd.sections)

    for section_key in cmd.sections:
        if any_collapsed:
            if is_section_collapsed(state, section_key):
                _restore_section_files(state, section_key)
        elif not is_section_collapsed(state, section_key):
            _take_section_files(state, section_key, source=cmd.current_files)
    return _ok(state)


def _handle_toggle_commit(state: State, cmd: ToggleCommit) -> ReduceResult:
    state.commits[cmd.commit_hash] = not state.commits.get(cmd.commit_hash, False)
    return _ok(state)


# ---------------------------------------------------------------------------
# Handler dispatch table
# ---------------------------------------------------------------------------

_HANDLERS: dict[str, Any] = {
    "reset": _handle_reset,
    # Per-item toggles
    "toggle_file": _handle_toggle_file,
    "toggle_section": _handle_toggle_section,
    "toggle_hunk": _handle_toggle_hunk,
    "toggle_commit": _handle_toggle_commit,
    # Explicit settings
    "set_file_expansion": _handle_set_file_expansion,
    "set_visibility_level": _handle_set_visibility_level,
    # Bulk
    "toggle_all_sections": _handle_toggle_all_sections,
}
