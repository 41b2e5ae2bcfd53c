"""
Textual-based list selector.

Used when a quick launch/resume query is ambiguous and by the `recent`
command: shows candidates with a live fuzzy filter and returns the one
the user picks.
"""

from typing import Callable, List, Optional, Sequence, TypeVar

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header, Input, OptionList, Static
from textual.widgets.option_list import Option

from codex_launch.formatting import truncate_one_line
from codex_launch.fuzzy import filter_indices
from codex_launch.projects import ProjectTarget
from codex_launch.session_scan import SessionRecord

T = TypeVar("T")


def build_options(rows: Sequence[str], indices: Sequence[int], width: int) -> List[Option]:
    """Options for the given row indices; option ids encode the row index."""
    return [
        Option(truncate_one_line(rows[i].replace("\n", " "), width), id=f"row-{i}")
        for i in indices
    ]


def row_index(option_id: Optional[str]) -> Optional[int]:
    """Inverse of the id scheme used by :func:`build_options`."""
    if not option_id or not option_id.startswith("row-"):
        return None
    try:
        return int(option_id[4:])
    except ValueError:
        return None


class SelectApp(App[Optional[T]]):
    """Filterable single-choice list; exits with the chosen item or None."""

    CSS = """
    #select-title {
        padding: 1 2;
        background: $panel;
    }

    #select-filter {
        margin: 0 1;
    }

    #select-options {
        height: 1fr;
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
        Binding("down", "cursor_down", "Down", show=False),
        Binding("up", "cursor_up", "Up", show=False),
    ]

    def __init__(
        self,
        title: str,
        items: Sequence[T],
        label: Callable[[T], str] = str,
        width: int = 160,
    ):
        """
        Initialize the selector.

        Args:
            title: Prompt shown above the list
            items: Candidates, in display order
            label: Row text for an item (also what the filter matches)
            width: Maximum row width in characters
        """
        super().__init__()
        self.title_text = title
        self.items = list(items)
        self.rows = [label(item) for item in self.items]
        self.row_width = width

    def compose(self) -> ComposeResult:
        """Compose the selector UI."""
        yield Header()
        yield Static(f"[bold cyan]{self.title_text}[/]", id="select-title")
        yield Input(placeholder="type to filter", id="select-filter")
        yield OptionList(
            *build_options(self.rows, range(len(self.rows)), self.row_width),
            id="select-options",
        )
        yield Footer()

    def on_mount(self) -> None:
        """Focus the filter so typing filters right away."""
        self.query_one("#select-filter", Input).focus()

    def on_input_changed(self, event: Input.Changed) -> None:
        """Re-filter the options on every keystroke."""
        options = self.query_one("#select-options", OptionList)
        options.clear_options()
        indices = filter_indices(event.value, self.rows)
        options.add_options(build_options(self.rows, indices, self.row_width))
        if indices:
            options.highlighted = 0

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Enter in the filter picks the highlighted option."""
        options = self.query_one("#select-options", OptionList)
        if options.highlighted is None:
            return
        self._finish(options.get_option_at_index(options.highlighted).id)

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        """Handle option selection."""
        self._finish(event.option.id)

    def _finish(self, option_id: Optional[str]) -> None:
        idx = row_index(option_id)
        if idx is not None:
            self.exit(self.items[idx])

    def action_cursor_down(self) -> None:
        self.query_one("#select-options", OptionList).action_cursor_down()

    def action_cursor_up(self) -> None:
        self.query_one("#select-options", OptionList).action_cursor_up()

    def action_cancel(self) -> None:
        """Quit without a selection."""
        self.exit(None)


def run_select(title: str, items: Sequence[T], label: Callable[[T], str] = str) -> Optional[T]:
    """
    Run the selector and return the chosen item, or None if cancelled.

    Args:
        title: Prompt shown above the list
        items: Candidates
        label: Row text for an item
    """
    if not items:
        return None
    app: SelectApp[T] = SelectApp(title, items, label)
    return app.run()


def pick_target(targets: Sequence[ProjectTarget]) -> Optional[ProjectTarget]:
    """Pick a folder to start a new session in."""
    return run_select("Pick a folder:", targets, ProjectTarget.display_line)


def pick_session(
    sessions: Sequence[SessionRecord], hide_path: bool = False
) -> Optional[SessionRecord]:
    """
    Pick a session to resume.

    Args:
        sessions: Candidates, newest or best match first
        hide_path: Drop the cwd column (all sessions share one folder)
    """
    return run_select(
        "Pick a session to resume:",
        sessions,
        lambda s: s.display_line(show_cwd=not hide_path),
    )
