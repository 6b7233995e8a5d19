"""Operator interaction handlers used to collect deployment parameters."""

from __future__ import annotations

import getpass
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional


class InputType(str, Enum):
    """Type of operator input expected."""
    TEXT = "text"           # free text, echoed
    SECRET = "secret"       # echo suppressed (tokens)


@dataclass
class InteractionRequest:
    """A single prompt presented to the operator."""

    key: str                                    # parameter the answer fills
    question: str
    input_type: InputType = InputType.TEXT
    default: Optional[str] = None
    hint: Optional[str] = None

    def format_prompt(self) -> str:
        """Format the request as a one-line prompt."""
        prompt = self.question
        if self.hint:
            prompt += f" ({self.hint})"
        elif self.default:
            prompt += f" (default: {self.default})"
        return prompt + ": "


@dataclass
class InteractionResponse:
    """Operator's answer to an interaction request."""

    value: str
    cancelled: bool = False

    @classmethod
    def cancelled_response(cls) -> "InteractionResponse":
        return cls(value="", cancelled=True)


class UserInteractionHandler(ABC):
    """Abstract base class for handling operator interaction."""

    @abstractmethod
    def ask(self, request: InteractionRequest) -> InteractionResponse:
        """Present a request to the operator and return the response."""


class CLIInteractionHandler(UserInteractionHandler):
    """Prompts on stdin; secrets are read with echo suppressed."""

    def __init__(
        self,
        *,
        input_func: Callable[[str], str] = input,
        secret_func: Callable[[str], str] = getpass.getpass,
        hide_secrets: bool = True,
    ) -> None:
        self._input = input_func
        self._secret = secret_func
        self.hide_secrets = hide_secrets

    def ask(self, request: InteractionRequest) -> InteractionResponse:
        prompt = request.format_prompt()
        try:
            if request.input_type == InputType.SECRET and self.hide_secrets:
                value = self._secret(prompt)
            else:
                value = self._input(prompt)
        except (KeyboardInterrupt, EOFError):
            print()
            return InteractionResponse.cancelled_response()

        return InteractionResponse(value=value.strip())


class AutoResponseHandler(UserInteractionHandler):
    """
    Scripted handler for tests or non-interactive runs.
    Answers come from ``responses`` keyed by request key; anything else is
    answered with the request default (or an empty string).
    """

    def __init__(self, responses: Optional[Dict[str, str]] = None) -> None:
        self.responses = dict(responses or {})
        self.asked: list[str] = []

    def ask(self, request: InteractionRequest) -> InteractionResponse:
        self.asked.append(request.key)
        if request.key in self.responses:
            return InteractionResponse(value=self.responses[request.key])
        return InteractionResponse(value=request.default or "")
