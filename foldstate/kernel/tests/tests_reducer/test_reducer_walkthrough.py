"""
foldstate Reducer -- Walkthrough and Determinism Tests

End-to-end sessions driven the way a status buffer drives the kernel:
resolve the cursor to a scope, build a command, apply it. Also checks that
the same command sequence always produces the same state, and that state
survives its plain-dict form.
"""

import json

import pytest

from foldstate.kernel import commands, reducer
from foldstate.kernel.scope import find_parent_section, resolve
from foldstate.kernel.types import EXPANDED, HEADERS, FileExpansion, LineInfo, SectionInfo, State

# ============================================================================
# Helpers
# ============================================================================


def state_json(state):
    """Canonical JSON representation with sorted keys for deterministic comparison."""
    return json.dumps(state.to_dict(), sort_keys=True)


SECTION_LINES = {
    1: SectionInfo(name="Unstaged changes (2)", section="unstaged"),
    8: SectionInfo(name="Staged changes (1)", section="staged"),
    11: SectionInfo(name="Recent commits", section="recent"),
}

LINE_MAP = {
    2: LineInfo(type="file", path="lua/a.lua", section="unstaged"),
    3: LineInfo(type="file", path="lua/a.lua", section="unstaged", hunk_index=1, is_hunk_header=True),
    4: LineInfo(type="file", path="lua/a.lua", section="unstaged", hunk_index=2, is_hunk_header=True),
    5: LineInfo(type="file", path="lua/a.lua", section="unstaged", hunk_index=3, is_hunk_header=True),
    6: LineInfo(type="file", path="README.md", section="unstaged"),
    9: LineInfo(type="file", path="init.lua", section="staged"),
    12: LineInfo(type="commit", section="recent"),
}


def session_commands():
    return [
        commands.toggle_file("unstaged:lua/a.lua"),
        commands.toggle_hunk("unstaged:lua/a.lua", 2, total_hunks=3),
        commands.toggle_file("staged:init.lua"),
        commands.toggle_section("staged"),
        commands.toggle_commit("abc123"),
        commands.toggle_file("unstaged:lua/a.lua"),
        commands.set_visibility_level(3, None, {"file_keys": ["unstaged:README.md"]}),
        commands.toggle_all_sections(["unstaged", "staged", "recent"]),
        commands.toggle_file("unstaged:lua/a.lua"),
    ]


# ============================================================================
# Walkthrough
# ============================================================================


class TestStatusBufferSession:
    def test_tab_on_lines(self):
        state = reducer.new()

        # Tab on the file line: fully expand
        scope = resolve(2, LINE_MAP, SECTION_LINES)
        assert scope.type == "file"
        state = reducer.apply(state, commands.toggle_file(scope.file_key))
        assert state.files["unstaged:lua/a.lua"].expanded == EXPANDED

        # Tab on the second hunk header: close just that hunk
        scope = resolve(4, LINE_MAP, SECTION_LINES)
        assert scope.type == "hunk"
        state = reducer.apply(state, commands.toggle_hunk(scope.file_key, scope.hunk_index, total_hunks=3))
        assert state.files["unstaged:lua/a.lua"] == FileExpansion(expanded=HEADERS, hunks={1: True, 2: False, 3: True})

        # Tab on the section header: collapse, then reopen with the file intact
        scope = resolve(1, LINE_MAP, SECTION_LINES)
        assert scope.type == "section"
        state = reducer.apply(state, commands.toggle_section(scope.section_key))
        assert reducer.is_section_collapsed(state, "unstaged")
        assert not reducer.is_file_expanded(state, "unstaged:lua/a.lua")
        state = reducer.apply(state, commands.toggle_section(scope.section_key))
        assert reducer.get_file(state, "unstaged:lua/a.lua").hunks == {1: True, 2: False, 3: True}

    def test_level_keys_scoped_to_cursor(self):
        state = reducer.new()
        # "4" on a file line inside unstaged applies to the file only
        scope = resolve(6, LINE_MAP, SECTION_LINES)
        state = reducer.apply(state, commands.set_visibility_level(4, scope))
        assert state.files == {"unstaged:README.md": FileExpansion(expanded=EXPANDED)}
        assert state.visibility_level == 2

        # "1" on a commit line falls back to the parent section
        scope = resolve(12, LINE_MAP, SECTION_LINES)
        assert scope.type == "global"
        section_key, header_line = find_parent_section(12, SECTION_LINES)
        assert (section_key, header_line) == ("recent", 11)

    def test_shift_tab_twice_restores(self):
        state = reducer.apply_all(
            reducer.new(),
            [
                commands.toggle_file("unstaged:lua/a.lua"),
                commands.toggle_file("staged:init.lua"),
                commands.toggle_hunk("unstaged:lua/a.lua", 1, total_hunks=3),
            ],
        )
        sections = ["unstaged", "staged", "recent"]
        collapsed = reducer.apply(state, commands.toggle_all_sections(sections))
        assert all(reducer.is_section_collapsed(collapsed, s) for s in sections)
        assert collapsed.files == {}
        restored = reducer.apply(collapsed, commands.toggle_all_sections(sections))
        assert restored == state


# ============================================================================
# Determinism
# ============================================================================


class TestDeterminism:
    def test_same_commands_same_state(self):
        expected = state_json(reducer.apply_all(reducer.new(), session_commands()))
        for _ in range(50):
            assert state_json(reducer.apply_all(reducer.new(), session_commands())) == expected

    def test_incremental_equals_apply_all(self):
        state = reducer.new()
        for cmd in session_commands():
            state = reducer.apply(state, cmd)
        assert state == reducer.apply_all(reducer.new(), session_commands())

    def test_intermediate_states_never_change(self):
        states = [reducer.new()]
        snapshots = [state_json(states[0])]
        for cmd in session_commands():
            states.append(reducer.apply(states[-1], cmd))
            snapshots.append(state_json(states[-1]))
        assert [state_json(s) for s in states] == snapshots

    def test_reset_after_any_prefix(self):
        cmds = session_commands()
        for n in range(len(cmds) + 1):
            state = reducer.apply_all(reducer.new(3), cmds[:n])
            assert reducer.apply(state, commands.reset()) == State(visibility_level=state.visibility_level)


# ============================================================================
# Plain-dict form
# ============================================================================


class TestStateDict:
    def test_json_round_trip(self):
        state = reducer.apply_all(reducer.new(), session_commands())
        back = State.from_dict(json.loads(state_json(state)))
        assert back == state

    def test_hunk_keys_come_back_as_ints(self):
        state = State(files={"staged:a": FileExpansion(expanded=HEADERS, hunks={1: True}, remembered={2: False})})
        back = State.from_dict(json.loads(state_json(state)))
        assert back.files["staged:a"].hunks == {1: True}
        assert back.files["staged:a"].remembered == {2: False}

    @pytest.mark.parametrize("level,expected", [(0, 1), (9, 4)])
    def test_from_dict_clamps_level(self, level, expected):
        assert State.from_dict({"visibility_level": level}).visibility_level == expected
