"""Interactive prompts -- questionary-backed save picker and restore confirmation."""

from __future__ import annotations

import sys
from pathlib import Path

import questionary

# Questionary style
STYLE = questionary.Style([
    ("qmark", "fg:cyan bold"),
    ("question", "fg:white bold"),
    ("answer", "fg:green"),
    ("pointer", "fg:cyan bold"),
    ("highlighted", "fg:cyan bold"),
    ("selected", "fg:green"),
    ("instruction", "fg:gray italic"),
])


class QuestionarySavePicker:
    """Ask for a save location in the terminal. Ctrl-C cancels."""

    def __init__(self, default_dir: Path) -> None:
        self._default_dir = default_dir

    @property
    def name(self) -> str:
        return "questionary"

    def choose(self, suggested_filename: str) -> Path | None:
        if not sys.stdin.isatty():
            raise RuntimeError("No interactive terminal for the save prompt")

        answer = questionary.path(
            "Save as:",
            default=str(self._default_dir / suggested_filename),
            style=STYLE,
        ).ask()
        if not answer:
            return None
        return Path(answer).expanduser()


def confirm_restore(backup_name: str, emptied_tables: list[str]) -> bool:
    """Confirm a destructive restore. Returns False on cancel."""
    print(f"  Restoring {backup_name} replaces ALL stored data.")
    if emptied_tables:
        print("  These tables have data now but none in the backup; they will be emptied:")
        for name in emptied_tables:
            print(f"    - {name}")
    answer = questionary.confirm("Continue with restore?", default=False, style=STYLE).ask()
    return bool(answer)
