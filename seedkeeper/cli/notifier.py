"""
Console implementation of the live-progress message contract.
"""

from rich.console import Console
from rich.markup import escape


class ConsoleMessage:
    """A 'message' that is re-printed to the console on every edit."""

    def __init__(self, console: Console, content: str):
        self.console = console
        self.content = content
        self.edits = 0

    async def edit(self, content: str) -> None:
        self.content = content
        self.edits += 1
        self.console.print(escape(content.rstrip()))


class ConsoleNotifier:
    """Creates ConsoleMessage handles; pass an instance as SeedManager's notify."""

    def __init__(self, console: Console):
        self.console = console

    async def __call__(self, content: str) -> ConsoleMessage:
        self.console.print(escape(content.rstrip()))
        return ConsoleMessage(self.console, content)
