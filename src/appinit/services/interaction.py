"""Operator interaction capability: prompts when someone is at the terminal."""

from abc import ABC, abstractmethod
from typing import Mapping, Optional

import click

from appinit.errors import OperatorUnavailable


class Operator(ABC):
    """Interface the installer uses to ask a human for input."""

    interactive = False

    @abstractmethod
    def choice(self, question: str, options: Mapping[str, str], default: Optional[str] = None) -> str:
        """Returns one of the keys of ``options``."""

    @abstractmethod
    def ask(self, question: str, default: Optional[str] = None, hide_input: bool = False) -> str:
        """Returns the stripped answer, or ``default`` when left blank."""


class TerminalOperator(Operator):
    interactive = True

    def __init__(self, console):
        self.console = console

    def choice(self, question: str, options: Mapping[str, str], default: Optional[str] = None) -> str:
        for key, label in options.items():
            self.console.print(f"  [cyan]{key}[/cyan]  {label}")
        return click.prompt(
            question,
            type=click.Choice(list(options)),
            default=default,
            show_choices=False,
        )

    def ask(self, question: str, default: Optional[str] = None, hide_input: bool = False) -> str:
        answer = click.prompt(
            question,
            default=default if default is not None else "",
            show_default=bool(default) and not hide_input,
            hide_input=hide_input,
        )
        return str(answer).strip()


class NonInteractiveOperator(Operator):
    """Refuses every prompt so unattended runs never block on stdin."""

    def choice(self, question: str, options: Mapping[str, str], default: Optional[str] = None) -> str:
        raise OperatorUnavailable(f"Cannot ask '{question}' in non-interactive mode.")

    def ask(self, question: str, default: Optional[str] = None, hide_input: bool = False) -> str:
        raise OperatorUnavailable(f"Cannot ask '{question}' in non-interactive mode.")
