"""
Terminal interaction for the review command.

Commands talk to a PromptIO instead of print()/input() so a review session
can be scripted in tests with ScriptedPromptIO.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, Protocol


class PromptIO(Protocol):
    def print(self, text: str = "") -> None: ...

    def input(self, prompt: str = "") -> str: ...


class ConsolePromptIO:
    def print(self, text: str = "") -> None:
        print(text)

    def input(self, prompt: str = "") -> str:
        return input(prompt)


@dataclass(slots=True)
class ScriptedPromptIO:
    """Answers come from `inputs` in order; running out is a test failure, not a hang."""
    inputs: list[str] = field(default_factory=list)
    outputs: list[str] = field(default_factory=list)
    prompts: list[str] = field(default_factory=list)

    def print(self, text: str = "") -> None:
        self.outputs.append(text)

    def input(self, prompt: str = "") -> str:
        self.prompts.append(prompt)
        if not self.inputs:
            raise AssertionError("ScriptedPromptIO has no more inputs")
        return self.inputs.pop(0)

    @property
    def text(self) -> str:
        return "\n".join(self.outputs)


def choose(io: PromptIO, choices: Mapping[str, str], default: Optional[str] = None) -> str:
    """
    Ask until the answer is one of the single-letter keys of `choices`.

    choices maps the key to its label, e.g. {"a": "accept", "q": "quit"}.
    An empty answer picks `default`. Returns the chosen label.
    """
    menu = "/".join(
        f"[{key}]{label[1:]}" if label.startswith(key) else f"{key}={label}"
        for key, label in choices.items()
    )
    hint = f" (default {default})" if default else ""
    keys = "/".join(choices)
    while True:
        answer = io.input(f"Action {menu}{hint}: ").strip().lower() or (default or "")
        if answer in choices:
            return choices[answer]
        io.print(f"Invalid choice. Use {keys}.")
