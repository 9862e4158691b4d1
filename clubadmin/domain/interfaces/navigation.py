"""Interface for navigation actions offered by a fallback view.

Routing is owned by the presentation layer; containment boundaries only
request these transitions.
"""

import abc


class Navigator(abc.ABC):
    """Abstract Base Class for navigation requests."""

    @abc.abstractmethod
    def reload(self) -> None:
        """Reloads the current view from scratch."""
        pass

    @abc.abstractmethod
    def go_back(self) -> None:
        """Returns to the previous view."""
        pass

    @abc.abstractmethod
    def go_home(self) -> None:
        """Returns to the dashboard."""
        pass

    def location(self) -> str:
        """Describes where the user currently is (URL or command line)."""
        return ""
