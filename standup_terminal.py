"""Terminal side of a standup run: rich prompts and clipboard export."""

import logging
import shutil
import subprocess
import sys

from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.text import Text

logger = logging.getLogger(__name__)

# Tried in order; the first one found on PATH wins.
CLIPBOARD_COMMANDS = (
    ["pbcopy"],
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
    ["clip"],
)


class RichPrompter:
    """Blocking prompt primitives backed by a rich console.

    Messages are printed as plain text: task and user names may contain
    square brackets that rich would otherwise read as markup.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def say(self, message: str, style: str | None = None, markup: bool = False) -> None:
        self.console.print(message, style=style, markup=markup, highlight=False)

    def text(self, message: str) -> str:
        return Prompt.ask(Text(message), console=self.console, default="", show_default=False)

    def confirm(self, message: str) -> bool:
        return Confirm.ask(Text(message), console=self.console)

    def select(self, message: str, choices: list[tuple[str, str]]) -> str:
        """Pick exactly one ``(label, value)`` pair by its number."""
        self.console.print(message, markup=False, highlight=False)
        for i, (label, _) in enumerate(choices, 1):
            self.console.print(f"  {i}. {label}", markup=False, highlight=False)
        picked = IntPrompt.ask(
            "Number",
            console=self.console,
            choices=[str(i) for i in range(1, len(choices) + 1)],
            show_choices=False,
        )
        return choices[picked - 1][1]

    def checkbox(self, message: str, choices: list[tuple[str, str]]) -> list[str]:
        """Pick any number of ``(label, value)`` pairs, e.g. ``1,3 5``; empty picks none."""
        self.console.print(message, markup=False, highlight=False)
        for i, (label, _) in enumerate(choices, 1):
            self.console.print(f"  {i}. {label}", markup=False, highlight=False)
        while True:
            raw = Prompt.ask("Numbers", console=self.console, default="", show_default=False)
            picked = parse_selection(raw, len(choices))
            if picked is not None:
                return [choices[i - 1][1] for i in picked]
            self.console.print(f"[prompt.invalid]Enter numbers between 1 and {len(choices)}")


def parse_selection(raw: str, count: int) -> list[int] | None:
    """Parse ``"1, 3 4"`` into sorted unique 1-based indices, or None if invalid."""
    picked: set[int] = set()
    for token in raw.replace(",", " ").split():
        if not token.isdigit():
            return None
        n = int(token)
        if not 1 <= n <= count:
            return None
        picked.add(n)
    return sorted(picked)


def copy_to_clipboard(text: str) -> bool:
    """Best-effort clipboard write; returns False instead of raising."""
    for cmd in CLIPBOARD_COMMANDS:
        if shutil.which(cmd[0]) is None:
            continue
        try:
            subprocess.run(cmd, input=text.encode(), check=True)
        except (OSError, subprocess.CalledProcessError) as exc:
            logger.warning(f"Clipboard command {cmd[0]} failed: {exc}")
            continue
        logger.debug(f"Copied {len(text)} characters with {cmd[0]}")
        return True
    logger.warning(f"No clipboard command available on {sys.platform}")
    return False
