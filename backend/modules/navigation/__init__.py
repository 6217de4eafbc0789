"""
Navigation module.

Public API:
- NavigationApp: Supported apps and their directions URLs
- NavigationLauncher: Opens directions in the chosen app
"""

from .models import NavigationApp
from .service import NavigationLauncher

__all__ = [
    "NavigationApp",
    "NavigationLauncher",
]
