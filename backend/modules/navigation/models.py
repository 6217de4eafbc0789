"""
Navigation module models.
"""

from enum import Enum

from shared.models import Coordinate


class NavigationApp(str, Enum):
    """Third-party apps that can take over turn-by-turn directions."""

    WAZE = "waze"
    APPLE_MAPS = "appleMaps"
    GOOGLE_MAPS = "googleMaps"

    @property
    def title(self) -> str:
        return {
            NavigationApp.WAZE: "Waze",
            NavigationApp.APPLE_MAPS: "Apple Maps",
            NavigationApp.GOOGLE_MAPS: "Google Maps",
        }[self]

    def directions_url(self, coordinate: Coordinate) -> str:
        lat, lon = coordinate.latitude, coordinate.longitude
        if self == NavigationApp.WAZE:
            return f"waze://?ll={lat},{lon}&navigate=yes"
        if self == NavigationApp.APPLE_MAPS:
            return f"http://maps.apple.com/?daddr={lat},{lon}"
        return f"comgooglemaps://?daddr={lat},{lon}&directionsmode=driving"
