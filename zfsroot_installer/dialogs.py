"""Modal prompts on top of rich.

Each method collects one kind of answer (free text, single choice, multi choice,
masked secret, yes/no). The menu only talks to this class, so tests swap it for
a scripted double.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence, Set, Tuple

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

Choice = Tuple[str, str]
CheckItem = Tuple[str, str, bool]


class Dialogs:
    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def message(self, title: str, text: str) -> None:
        self.console.print(Panel(text, title=title, title_align="left", box=box.SQUARE, expand=False))

    def form(self, title: str, fields: Sequence[Tuple[str, str, str]]) -> Dict[str, str]:
        """fields: (key, label, default). Empty answers keep the default."""

        self.console.print(f"\n[bold]{title}[/]")
        out: Dict[str, str] = {}
        for key, label, default in fields:
            out[key] = Prompt.ask(label, default=default, console=self.console).strip() or default
        return out

    def radiolist(self, title: str, choices: Sequence[Choice], default: Optional[str] = None) -> str:
        table = Table(title=title, box=box.SIMPLE, show_header=False)
        table.add_column("#", justify="right")
        table.add_column("Option")
        table.add_column("Description")
        for i, (key, desc) in enumerate(choices, start=1):
            marker = "*" if key == default else ""
            table.add_row(str(i), f"{key}{marker}", desc)
        self.console.print(table)

        default_index = next((i for i, (key, _) in enumerate(choices, start=1) if key == default), None)
        while True:
            if default_index is None:
                n = IntPrompt.ask("Select", console=self.console)
            else:
                n = IntPrompt.ask("Select", default=default_index, console=self.console)
            if 1 <= n <= len(choices):
                return choices[n - 1][0]
            self.console.print("[prompt.invalid]Please select one of the listed options")

    def checklist(self, title: str, items: Sequence[CheckItem]) -> Set[str]:
        self.console.print(f"\n[bold]{title}[/]")
        return {key for key, label, on in items if Confirm.ask(label, default=on, console=self.console)}

    def password(self, title: str, *, confirm: bool = True) -> str:
        while True:
            secret = Prompt.ask(title, password=True, console=self.console)
            if not secret:
                self.console.print("[prompt.invalid]Value must not be empty")
                continue
            if confirm and secret != Prompt.ask("Confirm", password=True, console=self.console):
                self.console.print("[prompt.invalid]Values don't match, please try again")
                continue
            return secret

    def yesno(self, title: str, text: str = "", *, default: bool = False) -> bool:
        if text:
            self.message(title, text)
            return Confirm.ask("Continue?", default=default, console=self.console)
        return Confirm.ask(title, default=default, console=self.console)

    def summary(self, title: str, rows: Dict[str, object]) -> None:
        table = Table(title=title, box=box.SIMPLE)
        table.add_column("Setting")
        table.add_column("Value")
        for key, value in rows.items():
            table.add_row(key, str(value))
        self.console.print(table)
