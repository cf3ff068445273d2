"""Interface for interacting with the user (output only for now).

Defines the contract for displaying information, errors, warnings and the
diagnostics/lead views, allowing different UI implementations.
"""

import abc
from typing import Any, List

from auracli.domain.models.diagnostics import AnalysisResult
from auracli.domain.models.lead import Lead


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

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
    def display_analysis(self, result: AnalysisResult) -> None:
        """Renders a diagnostic: score, face type and the treatment roadmap."""
        pass

    @abc.abstractmethod
    def display_leads(self, leads: List[Lead]) -> None:
        """Renders the lead list (already ordered by the caller)."""
        pass

    def display_system_status(self, status: str, detail: str = "") -> None:
        """Displays the bootstrap status of the application."""
        pass
