"""The two reachable views and the history-replacing transitions between them."""

import logging
from typing import List

LOGIN_ROUTE = "/"
DIRECTORY_ROUTE = "/home"


class Navigator:
    """Tracks the current route and its history stack."""

    def __init__(self, initial_route: str = LOGIN_ROUTE):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.history: List[str] = [initial_route]

    @property
    def current_route(self) -> str:
        return self.history[-1]

    def push(self, route: str) -> None:
        self.logger.debug(f"Navigating to {route}")
        self.history.append(route)

    def replace(self, route: str) -> None:
        """Swap the current entry, so going back cannot return to it."""
        self.logger.debug(f"Navigating to {route} (replacing {self.current_route})")
        self.history[-1] = route

    def back(self) -> str:
        if len(self.history) > 1:
            self.history.pop()
        return self.current_route
