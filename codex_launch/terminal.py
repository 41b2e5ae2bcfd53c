"""
Terminal runtime for the picker.

Owns raw mode, the alternate screen and the key/redraw loop. All picker
logic lives in :mod:`codex_launch.picker`; this module only moves bytes.
"""

import codecs
import contextlib
import io
import logging
import os
import select
import shutil
import sys
import termios
import tty
from typing import Iterator, Mapping, Optional, TextIO

from rich.console import Console
from rich.control import Control, ControlType
from rich.text import Text

from codex_launch.errors import LaunchError, NotATerminalError, PickerCrashedError
from codex_launch.keys import decode_keys
from codex_launch.picker import (
    Line,
    PickerData,
    PickerState,
    ProjectPick,
    Quit,
    handle_key,
    render,
)

logger = logging.getLogger(__name__)

POLL_SECONDS = 0.25

CURSOR_HOME = str(Control.home())
CLEAR_TO_EOL = str(Control((ControlType.ERASE_IN_LINE, 0)))


def should_use_alt_screen(env: Optional[Mapping[str, str]] = None) -> bool:
    """Alternate screen unless disabled or running under zellij."""
    env = os.environ if env is None else env
    if "CODEX_LAUNCH_NO_ALT_SCREEN" in env:
        return False
    if "ZELLIJ" in env:
        return False
    return True


def is_interactive(stdin: TextIO, stdout: TextIO) -> bool:
    """True when both ends are attached to a terminal."""
    try:
        return stdin.isatty() and stdout.isatty()
    except ValueError:
        return False


@contextlib.contextmanager
def raw_terminal(stdin: TextIO, stdout: TextIO) -> Iterator[None]:
    """
    Put the terminal in raw mode for the duration of the block.

    Raw mode, the alternate screen and the hidden cursor are undone on
    every exit path, including exceptions raised inside the block.
    """
    fd = stdin.fileno()
    old_attrs = termios.tcgetattr(fd)
    console = Console(file=stdout, force_terminal=True)
    use_alt_screen = should_use_alt_screen()
    try:
        tty.setraw(fd)
        if use_alt_screen:
            console.set_alt_screen(True)
        else:
            console.control(Control.clear(), Control.home())
        console.show_cursor(False)
        stdout.flush()
        yield
    finally:
        try:
            console.show_cursor(True)
            if use_alt_screen:
                console.set_alt_screen(False)
            else:
                stdout.write("\r\n")
            stdout.flush()
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_attrs)


def frame_to_ansi(lines: list[Line], width: int, height: int = 0) -> str:
    """
    Convert rendered lines to one ANSI string that repaints the screen.

    Rows between the last line and ``height`` are blanked so a shorter
    frame does not leave the previous one showing underneath.
    """
    console = Console(
        file=io.StringIO(),
        force_terminal=True,
        color_system="standard",
        highlight=False,
        width=max(width, 1),
    )
    out = [CURSOR_HOME]
    for i, line in enumerate(lines):
        text = Text(no_wrap=True, overflow="crop")
        for chunk, style in line.segments:
            text.append(chunk, style=style or None)
        text.truncate(max(width, 1))
        with console.capture() as capture:
            console.print(text, end="")
        if i:
            out.append("\r\n")
        out.append(capture.get() + CLEAR_TO_EOL)
    for _ in range(len(lines), height):
        out.append("\r\n" + CLEAR_TO_EOL)
    return "".join(out)


def _event_loop(data: PickerData, stdin: TextIO, stdout: TextIO) -> ProjectPick:
    fd = stdin.fileno()
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    state = PickerState()

    while True:
        # Size is re-read every frame, so a resize only triggers a redraw
        width, height = shutil.get_terminal_size()
        stdout.write(frame_to_ansi(render(data, state, width, height), width, height))
        stdout.flush()

        ready, _, _ = select.select([fd], [], [], POLL_SECONDS)
        if not ready:
            continue
        chunk = os.read(fd, 1024)
        if not chunk:
            return Quit()
        for key in decode_keys(decoder.decode(chunk)):
            state, pick = handle_key(data, state, key)
            if pick is not None:
                logger.debug("picker closed with %s in view %s", pick, state.view.value)
                return pick


def run_picker(
    data: PickerData,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
) -> ProjectPick:
    """
    Run the interactive picker until the user picks or quits.

    Args:
        data: Targets and sessions to pick from
        stdin: Input stream (default: sys.stdin)
        stdout: Output stream (default: sys.stdout)

    Returns:
        The user's ProjectPick

    Raises:
        NotATerminalError: If stdin or stdout is not a TTY
        PickerCrashedError: If the UI failed; the terminal is restored first
    """
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    if not is_interactive(stdin, stdout):
        raise NotATerminalError()

    try:
        with raw_terminal(stdin, stdout):
            return _event_loop(data, stdin, stdout)
    except LaunchError:
        raise
    except Exception as e:
        logger.debug("picker crashed", exc_info=True)
        raise PickerCrashedError(
            f"UI crashed ({type(e).__name__}: {e}). Terminal should be restored; "
            "re-run with `--no-ui` if needed."
        ) from e
