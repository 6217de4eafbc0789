"""
Hands directions off to an external navigation app.
"""

import logging
import webbrowser
from typing import Callable

from shared.models import Coordinate

from .models import NavigationApp

logger = logging.getLogger(__name__)


class NavigationLauncher:
    """
    Opens directions URLs.

    Fire-and-forget: failures to open are logged, never raised.

    Args:
        opener: Callable taking a URL and returning whether it was opened
    """

    def __init__(self, opener: Callable[[str], bool] = webbrowser.open):
        self._opener = opener

    def open_directions(self, app: NavigationApp, coordinate: Coordinate) -> None:
        url = app.directions_url(coordinate)
        logger.info(f"Opening navigation: {app.title}")
        try:
            opened = self._opener(url)
        except Exception as e:
            logger.warning(f"Could not open {app.title} directions: {e}")
            return
        if opened is False:
            logger.warning(f"No handler for {app.title} directions URL {url}")
