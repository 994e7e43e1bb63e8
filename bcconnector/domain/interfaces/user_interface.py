"""Interface for interacting with the user (output only).

Defines the contract for displaying API results, errors, warnings and
informational messages, allowing different UI implementations.
"""

import abc
from typing import Any, Dict

from bcconnector.domain.models.common import JsonPayload


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_result(self, data: JsonPayload, **kwargs: Any) -> None:
        """Displays a decoded API response to the user.

        Args:
            data: The structured payload returned by the API.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user.

        Args:
            error_message: The error message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    @abc.abstractmethod
    def display_settings(self, settings: Dict[str, Any]) -> None:
        """Displays effective configuration values.

        Args:
            settings: Mapping of setting name to (already masked) value.
        """
        pass
