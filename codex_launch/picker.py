"""
Picker state machine: tabs, live filtering, cursor and viewport.

Everything here is pure. The terminal runtime feeds keys into
:func:`handle_key` and draws whatever :func:`render` returns, so the whole
picker can be driven from tests with a scripted key sequence.

Views:
    Projects           -> enter: drill into target, ctrl+n: new session
    Sessions (scoped)  -> enter: resume
    Sessions (all)     -> enter: resume
    Project sessions   -> row 0 starts a new session, rows 1.. resume
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cached_property
from typing import Optional, Union

from codex_launch import keys
from codex_launch.formatting import ELLIPSIS, compact_path
from codex_launch.fuzzy import filter_indices
from codex_launch.keys import Key
from codex_launch.projects import ProjectTarget
from codex_launch.session_scan import SessionRecord

PAGE_SIZE = 10
# Header, key help, filter line, footer
CHROME_ROWS = 4


class View(str, Enum):
    PROJECTS = "projects"
    SESSIONS_SCOPED = "sessions-scoped"
    SESSIONS_ALL = "sessions-all"
    PROJECT_SESSIONS = "project-sessions"


TABS = (View.PROJECTS, View.SESSIONS_SCOPED, View.SESSIONS_ALL)
TAB_TITLES = {
    View.PROJECTS: "Projects",
    View.SESSIONS_SCOPED: "Sessions (scoped)",
    View.SESSIONS_ALL: "Sessions (all)",
}


@dataclass(frozen=True)
class NewSession:
    """Launch a new session in ``target``."""

    target: ProjectTarget


@dataclass(frozen=True)
class ResumeSession:
    """Resume ``session`` in its own cwd."""

    session: SessionRecord


@dataclass(frozen=True)
class OpenConfig:
    """Open the config file in the OS default editor."""


@dataclass(frozen=True)
class Quit:
    """Leave without launching anything."""


ProjectPick = Union[NewSession, ResumeSession, OpenConfig, Quit]


@dataclass(frozen=True)
class ListState:
    """Filter text and cursor of one list."""

    filter: str = ""
    cursor: int = 0


@dataclass(frozen=True)
class DrillDown:
    """Sessions of one target, entered fresh from the Projects tab."""

    target: ProjectTarget
    sessions: tuple[SessionRecord, ...]
    listing: ListState = ListState()


@dataclass(frozen=True)
class PickerState:
    """Position of the picker; every field is replaced, never mutated."""

    view: View = View.PROJECTS
    projects: ListState = ListState()
    scoped: ListState = ListState()
    all_sessions: ListState = ListState()
    drill: Optional[DrillDown] = None


@dataclass(frozen=True)
class PickerData:
    """Lists the picker navigates; fixed for the lifetime of the picker."""

    targets: tuple[ProjectTarget, ...]
    scoped_sessions: tuple[SessionRecord, ...] = ()
    all_sessions: tuple[SessionRecord, ...] = ()
    sessions_limit: int = 15

    @cached_property
    def target_rows(self) -> list[str]:
        return [t.display_line() for t in self.targets]

    @cached_property
    def scoped_rows(self) -> list[str]:
        return [s.display_line() for s in self.scoped_sessions]

    @cached_property
    def all_rows(self) -> list[str]:
        return [s.display_line() for s in self.all_sessions]

    def sessions_for_target(self, target: ProjectTarget) -> tuple[SessionRecord, ...]:
        """Newest sessions whose cwd lies under the target path."""
        found = [s for s in self.all_sessions if s.cwd.is_relative_to(target.path)]
        return tuple(found[: self.sessions_limit])


@dataclass(frozen=True)
class Line:
    """One rendered terminal line as ``(text, style)`` segments."""

    segments: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    @property
    def plain(self) -> str:
        return "".join(text for text, _ in self.segments)


def current_list(state: PickerState) -> ListState:
    """List state of the active view."""
    if state.view == View.PROJECT_SESSIONS and state.drill is not None:
        return state.drill.listing
    if state.view == View.SESSIONS_SCOPED:
        return state.scoped
    if state.view == View.SESSIONS_ALL:
        return state.all_sessions
    return state.projects


def _with_list(state: PickerState, lst: ListState) -> PickerState:
    if state.view == View.PROJECT_SESSIONS and state.drill is not None:
        return replace(state, drill=replace(state.drill, listing=lst))
    if state.view == View.SESSIONS_SCOPED:
        return replace(state, scoped=lst)
    if state.view == View.SESSIONS_ALL:
        return replace(state, all_sessions=lst)
    return replace(state, projects=lst)


def row_texts(data: PickerData, state: PickerState) -> list[str]:
    """Unfiltered row text of the active view's items."""
    if state.view == View.PROJECT_SESSIONS and state.drill is not None:
        return [s.display_line(show_cwd=False) for s in state.drill.sessions]
    if state.view == View.SESSIONS_SCOPED:
        return data.scoped_rows
    if state.view == View.SESSIONS_ALL:
        return data.all_rows
    return data.target_rows


def visible_indices(data: PickerData, state: PickerState) -> list[int]:
    """Indices into the active view's items that pass the filter, in display order."""
    return filter_indices(current_list(state).filter, row_texts(data, state))


def row_count(data: PickerData, state: PickerState) -> int:
    """Selectable rows in the active view (drill-down adds the "new" row)."""
    n = len(visible_indices(data, state))
    return n + 1 if state.view == View.PROJECT_SESSIONS else n


def clamp_cursor(data: PickerData, state: PickerState) -> PickerState:
    """Pull the active cursor back into range after the row set changed."""
    lst = current_list(state)
    top = max(row_count(data, state) - 1, 0)
    cursor = min(max(lst.cursor, 0), top)
    if cursor == lst.cursor:
        return state
    return _with_list(state, replace(lst, cursor=cursor))


def _move(data: PickerData, state: PickerState, delta: Optional[int], to_end: bool = False) -> PickerState:
    lst = current_list(state)
    top = max(row_count(data, state) - 1, 0)
    if to_end:
        cursor = top
    elif delta is None:
        cursor = 0
    else:
        cursor = min(max(lst.cursor + delta, 0), top)
    return _with_list(state, replace(lst, cursor=cursor))


def _edit_filter(state: PickerState, text: str) -> PickerState:
    return _with_list(state, ListState(filter=text, cursor=0))


def selected_target(data: PickerData, state: PickerState) -> Optional[ProjectTarget]:
    """Target under the cursor on the Projects tab."""
    visible = visible_indices(data, replace(state, view=View.PROJECTS))
    cursor = state.projects.cursor
    if 0 <= cursor < len(visible):
        return data.targets[visible[cursor]]
    return None


def selected_session(data: PickerData, state: PickerState) -> Optional[SessionRecord]:
    """Session under the cursor in a sessions tab or the drill-down."""
    visible = visible_indices(data, state)
    lst = current_list(state)
    if state.view == View.PROJECT_SESSIONS and state.drill is not None:
        idx = lst.cursor - 1
        if 0 <= idx < len(visible):
            return state.drill.sessions[visible[idx]]
        return None
    items = (
        data.scoped_sessions if state.view == View.SESSIONS_SCOPED else data.all_sessions
    )
    if 0 <= lst.cursor < len(visible):
        return items[visible[lst.cursor]]
    return None


def _switch(state: PickerState, view: View) -> PickerState:
    return replace(state, view=view, drill=None)


def _activate(data: PickerData, state: PickerState) -> tuple[PickerState, Optional[ProjectPick]]:
    if state.view == View.PROJECTS:
        target = selected_target(data, state)
        if target is None:
            return state, None
        drill = DrillDown(target=target, sessions=data.sessions_for_target(target))
        return replace(state, view=View.PROJECT_SESSIONS, drill=drill), None

    if state.view == View.PROJECT_SESSIONS and state.drill is not None:
        if state.drill.listing.cursor == 0:
            return state, NewSession(state.drill.target)
        session = selected_session(data, state)
        return state, ResumeSession(session) if session is not None else None

    session = selected_session(data, state)
    return state, ResumeSession(session) if session is not None else None


def _view_key(state: PickerState, key: Key) -> Optional[tuple[PickerState, Optional[ProjectPick]]]:
    """Tab/back navigation for the active view; None if ``key`` is not one."""
    view = state.view
    if view == View.PROJECTS:
        if key in (keys.RIGHT, keys.TAB):
            return _switch(state, View.SESSIONS_SCOPED), None
        if key == keys.ESCAPE:
            return state, Quit()
    elif view == View.SESSIONS_SCOPED:
        if key in (keys.LEFT, keys.ESCAPE, keys.SHIFT_TAB):
            return _switch(state, View.PROJECTS), None
        if key in (keys.RIGHT, keys.TAB):
            return _switch(state, View.SESSIONS_ALL), None
    elif view == View.SESSIONS_ALL:
        if key in (keys.LEFT, keys.SHIFT_TAB):
            return _switch(state, View.SESSIONS_SCOPED), None
        if key == keys.ESCAPE:
            return _switch(state, View.PROJECTS), None
        if key in (keys.RIGHT, keys.TAB):
            return state, None
    elif view == View.PROJECT_SESSIONS:
        if key in (keys.LEFT, keys.ESCAPE):
            return _switch(state, View.PROJECTS), None
    return None


def handle_key(
    data: PickerData, state: PickerState, key: Key
) -> tuple[PickerState, Optional[ProjectPick]]:
    """
    Apply one key press.

    Global keys (quit, open config) are checked before anything view
    specific. Filter edits reset the cursor to 0; every other transition
    keeps the cursor and clamps it into range.

    Args:
        data: Lists being picked from
        state: Current picker state
        key: Key pressed

    Returns:
        ``(new_state, pick)``; ``pick`` is set when the picker should close
    """
    if key == keys.CTRL_C:
        return state, Quit()
    if key == keys.CTRL_O:
        return state, OpenConfig()

    lst = current_list(state)

    if key == keys.UP:
        new = _move(data, state, -1)
    elif key == keys.DOWN:
        new = _move(data, state, 1)
    elif key == keys.PAGE_UP:
        new = _move(data, state, -PAGE_SIZE)
    elif key == keys.PAGE_DOWN:
        new = _move(data, state, PAGE_SIZE)
    elif key == keys.HOME:
        new = _move(data, state, None)
    elif key == keys.END:
        new = _move(data, state, None, to_end=True)
    elif key == keys.BACKSPACE:
        new = _edit_filter(state, lst.filter[:-1])
    elif key == keys.CTRL_U:
        new = _edit_filter(state, "")
    elif key.name == "char" and key.char:
        new = _edit_filter(state, lst.filter + key.char)
    elif key == keys.ENTER:
        new, pick = _activate(data, state)
        if pick is not None:
            return new, pick
    elif key == keys.CTRL_N and state.view == View.PROJECTS:
        target = selected_target(data, state)
        if target is not None:
            return state, NewSession(target)
        new = state
    else:
        outcome = _view_key(state, key)
        if outcome is None:
            return state, None
        new, pick = outcome
        if pick is not None:
            return new, pick

    return clamp_cursor(data, new), None


def run_script(
    data: PickerData, key_sequence, state: Optional[PickerState] = None
) -> tuple[PickerState, Optional[ProjectPick]]:
    """Feed keys until one produces a pick; returns the final state and pick."""
    state = state or PickerState()
    for key in key_sequence:
        state, pick = handle_key(data, state, key)
        if pick is not None:
            return state, pick
    return state, None


def viewport(cursor: int, total: int, rows: int) -> tuple[int, int]:
    """
    Window ``[start, end)`` of rows to draw, centring the cursor.

    The window stops centring at the ends of the list so it never shows
    blank rows while there are items left to fill them.
    """
    rows = max(rows, 1)
    start = max(cursor - rows // 2, 0)
    start = min(start, max(total - rows, 0))
    return start, min(start + rows, total)


def _fit(text: str, width: int) -> str:
    text = text.replace("\n", " ").replace("\r", " ")
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    return text[: max(width - 1, 0)] + ELLIPSIS


def _header(state: PickerState, width: int) -> list[Line]:
    segments = [("codex-launch", "bold"), ("  ", "")]
    if state.view == View.PROJECT_SESSIONS and state.drill is not None:
        target = state.drill.target
        segments.append((f"› {target.label}", "bold cyan"))
        segments.append((f"  {compact_path(target.path, 60)}", "dim"))
        help_text = "enter=select  esc/←=back  ctrl+o=open-config  ctrl+c=quit"
    else:
        for i, tab in enumerate(TABS):
            if i:
                segments.append((" | ", "dim"))
            style = "reverse bold" if tab == state.view else ""
            segments.append((f" {TAB_TITLES[tab]} ", style))
        if state.view == View.PROJECTS:
            help_text = (
                "enter=sessions  ctrl+n=new  →/tab=next tab  "
                "ctrl+o=open-config  esc/ctrl+c=quit"
            )
        else:
            help_text = "enter=resume  ←/→=switch tab  esc=back  ctrl+o=open-config  ctrl+c=quit"
    header = Line(tuple(segments))
    if len(header.plain) > width:
        header = Line(((_fit(header.plain, width), "bold"),))
    return [header, Line(((_fit(help_text, width), "dim"),))]


def render(data: PickerData, state: PickerState, width: int, height: int) -> list[Line]:
    """
    Lay out one frame.

    Args:
        data: Lists being picked from
        state: Current picker state
        width: Terminal columns
        height: Terminal rows

    Returns:
        Lines to draw top to bottom (at most ``height``)
    """
    lst = current_list(state)
    texts = row_texts(data, state)
    visible = visible_indices(data, state)

    rows_text = [texts[i] for i in visible]
    total = len(texts)
    if state.view == View.PROJECT_SESSIONS and state.drill is not None:
        new_row = f"+ Start new session in {compact_path(state.drill.target.path, 60)}"
        rows_text = [new_row] + rows_text

    lines = _header(state, width)
    lines.append(Line((("Filter: ", "bold"), (_fit(lst.filter, width - 8), ""))))

    list_rows = max(height - CHROME_ROWS, 1)
    start, end = viewport(lst.cursor, len(rows_text), list_rows)
    if not rows_text:
        lines.append(Line((("  (no matches)", "dim"),)))
    for idx in range(start, end):
        row = _fit(rows_text[idx], width - 2)
        if idx == lst.cursor:
            lines.append(Line(((f"> {row}", "reverse"),)))
        else:
            lines.append(Line(((f"  {row}", ""),)))

    lines.append(Line(((f"{len(visible)} / {total}", "dim"),)))
    return lines[: max(height, 1)]
