"""Operator interaction abstraction for the CLI and tests.

This module provides a protocol-based approach to operator interaction, allowing
a click-backed implementation for the terminal and a scripted implementation for
tests.

Example:
    >>> handler = CLIInteractionHandler()
    >>> choices = [
    ...     ("1111-...", "Production (1111-...)"),
    ...     ("2222-...", "Sandbox (2222-...)"),
    ... ]
    >>> choice = handler.prompt_choice("Select subscription:", choices)
    >>> handler.show_info(f"Selected: {choices[choice][1]}")

    Testing example:
    >>> test_handler = MockInteractionHandler(choice_responses=[1])
    >>> test_handler.prompt_choice("Select:", [("a", "opt a"), ("b", "opt b")])
    1
"""

from typing import Protocol, runtime_checkable

import click


@runtime_checkable
class InteractionHandler(Protocol):
    """Protocol for operator interaction.

    Every prompt the provisioning flow needs goes through this interface, so
    the flow itself never talks to the terminal directly.
    """

    def prompt_choice(self, message: str, choices: list[tuple[str, str]]) -> int:
        """Prompt operator to select from multiple choices.

        Args:
            message: Prompt message to display
            choices: List of (label, description) tuples

        Returns:
            Zero-based index of selected choice

        Raises:
            ValueError: If choices is empty
            click.Abort: If operator cancels (CLI implementation)
        """
        ...

    def prompt_text(self, message: str, default: str | None = None) -> str:
        """Prompt for a free-text value.

        Args:
            message: Prompt message to display
            default: Value used when the operator just presses Enter

        Returns:
            Entered value with surrounding whitespace removed
        """
        ...

    def prompt_password(self, message: str) -> str:
        """Prompt for a secret value with hidden input and confirmation.

        Args:
            message: Prompt message to display

        Returns:
            The secret exactly as typed
        """
        ...

    def confirm(self, message: str, default: bool = True) -> bool:
        """Prompt for yes/no confirmation.

        Args:
            message: Confirmation question to display
            default: Default value if operator just presses Enter

        Returns:
            True if confirmed, False otherwise
        """
        ...

    def show_warning(self, message: str) -> None:
        """Display a warning message."""
        ...

    def show_info(self, message: str) -> None:
        """Display an informational message."""
        ...


class CLIInteractionHandler:
    """Click-based CLI interaction handler.

    Colored output and numbered choice lists via click.
    """

    def prompt_choice(self, message: str, choices: list[tuple[str, str]]) -> int:
        """Prompt operator to select from a numbered list.

        Re-prompts until a number in range is entered.

        Args:
            message: Prompt message to display
            choices: List of (label, description) tuples

        Returns:
            Zero-based index of selected choice

        Raises:
            ValueError: If choices is empty
            click.Abort: If operator cancels (Ctrl+C)
        """
        if not choices:
            raise ValueError("choices cannot be empty")

        click.echo()
        click.secho(message, fg="green", bold=True)
        click.echo()

        for i, (_label, description) in enumerate(choices, 1):
            click.echo(f"  {click.style(str(i), fg='cyan')}. {description}")

        click.echo()

        while True:
            try:
                choice_str = click.prompt(
                    "Enter choice",
                    type=str,
                    show_default=False,
                )
                choice_num = int(choice_str)

                if 1 <= choice_num <= len(choices):
                    return choice_num - 1
                click.secho(
                    f"Please enter a number between 1 and {len(choices)}",
                    fg="red",
                )
            except ValueError:
                click.secho("Please enter a valid number", fg="red")
            except (KeyboardInterrupt, click.Abort):
                click.echo()
                raise click.Abort() from None

    def prompt_text(self, message: str, default: str | None = None) -> str:
        """Prompt for a free-text value, re-prompting on blank input."""
        while True:
            value = click.prompt(
                message, default=default, type=str, show_default=default is not None
            )
            value = value.strip()
            if value:
                return value
            click.secho("A value is required", fg="red")

    def prompt_password(self, message: str) -> str:
        """Prompt for a password twice with hidden input."""
        return click.prompt(
            message,
            hide_input=True,
            confirmation_prompt=True,
            type=str,
        )

    def confirm(self, message: str, default: bool = True) -> bool:
        """Prompt for yes/no confirmation with colored output."""
        return click.confirm(
            click.style(message, fg="yellow"),
            default=default,
        )

    def show_warning(self, message: str) -> None:
        """Display a warning message in yellow on stderr."""
        click.secho(f"Warning: {message}", fg="yellow", err=True)

    def show_info(self, message: str) -> None:
        """Display an informational message in green."""
        click.secho(message, fg="green")


class MockInteractionHandler:
    """Mock interaction handler for testing with pre-programmed responses.

    Provides deterministic responses for testing without operator interaction.
    Tracks all interactions for verification in tests.

    Example:
        >>> handler = MockInteractionHandler(
        ...     choice_responses=[0],
        ...     text_responses=["eastus"],
        ...     confirm_responses=[True],
        ... )
        >>> handler.prompt_choice("Select:", [("a", "opt a"), ("b", "opt b")])
        0
        >>> handler.prompt_text("Region")
        'eastus'
        >>> len(handler.interactions)
        2
    """

    def __init__(
        self,
        choice_responses: list[int] | None = None,
        text_responses: list[str] | None = None,
        password_responses: list[str] | None = None,
        confirm_responses: list[bool] | None = None,
    ):
        """Initialize test handler with pre-programmed responses.

        Args:
            choice_responses: Choice indices to return in sequence
            text_responses: Text values to return in sequence; an empty string
                means "accept the default"
            password_responses: Secrets to return in sequence
            confirm_responses: Boolean confirmation responses in sequence
        """
        self.choice_responses = choice_responses or []
        self.text_responses = text_responses or []
        self.password_responses = password_responses or []
        self.confirm_responses = confirm_responses or []
        self.interactions: list[dict] = []
        self._choice_index = 0
        self._text_index = 0
        self._password_index = 0
        self._confirm_index = 0

    @staticmethod
    def _next(responses: list, index: int, kind: str):
        if index >= len(responses):
            raise IndexError(
                f"No more {kind} responses available. "
                f"Provided {len(responses)}, "
                f"needed {index + 1}"
            )
        return responses[index]

    def prompt_choice(self, message: str, choices: list[tuple[str, str]]) -> int:
        """Return next pre-programmed choice response.

        Raises:
            ValueError: If choices is empty or the response is out of range
            IndexError: If no more choice responses available
        """
        if not choices:
            raise ValueError("choices cannot be empty")

        response = self._next(self.choice_responses, self._choice_index, "choice")
        self._choice_index += 1

        if not 0 <= response < len(choices):
            raise ValueError(
                f"Invalid pre-programmed response {response} for {len(choices)} choices"
            )

        self.interactions.append(
            {
                "type": "choice",
                "message": message,
                "choices": choices,
                "response": response,
            }
        )
        return response

    def prompt_text(self, message: str, default: str | None = None) -> str:
        """Return next pre-programmed text response (or the default for "")."""
        response = self._next(self.text_responses, self._text_index, "text")
        self._text_index += 1

        value = response.strip() or (default or "")
        self.interactions.append(
            {
                "type": "text",
                "message": message,
                "default": default,
                "response": value,
            }
        )
        return value

    def prompt_password(self, message: str) -> str:
        """Return next pre-programmed secret. The secret itself is not recorded."""
        response = self._next(self.password_responses, self._password_index, "password")
        self._password_index += 1

        self.interactions.append({"type": "password", "message": message})
        return response

    def confirm(self, message: str, default: bool = True) -> bool:
        """Return next pre-programmed confirmation response."""
        response = self._next(self.confirm_responses, self._confirm_index, "confirm")
        self._confirm_index += 1

        self.interactions.append(
            {
                "type": "confirm",
                "message": message,
                "default": default,
                "response": response,
            }
        )
        return response

    def show_warning(self, message: str) -> None:
        """Record warning message without displaying."""
        self.interactions.append({"type": "warning", "message": message})

    def show_info(self, message: str) -> None:
        """Record info message without displaying."""
        self.interactions.append({"type": "info", "message": message})

    def reset(self) -> None:
        """Reset handler state for reuse in tests."""
        self.interactions.clear()
        self._choice_index = 0
        self._text_index = 0
        self._password_index = 0
        self._confirm_index = 0


__all__ = ["CLIInteractionHandler", "InteractionHandler", "MockInteractionHandler"]
