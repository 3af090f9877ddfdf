"""
Tour provider adapters.

Modules:
  base        — TourProvider: HTTP fetch, error translation, pure payload mapping
  leveltravel — Level.Travel aggregator (enqueue, poll status, grouped hotels)
  travelata   — Travelata operator API
  sletat      — Sletat operator API
  catalog     — shared demo hotel catalog for providers without credentials
"""

from tourwise.services.providers.base import TourProvider
from tourwise.services.providers.leveltravel import LevelTravelProvider
from tourwise.services.providers.sletat import SletatProvider
from tourwise.services.providers.travelata import TravelataProvider


def default_providers() -> list[TourProvider]:
    return [LevelTravelProvider(), TravelataProvider(), SletatProvider()]


__all__ = ["LevelTravelProvider", "SletatProvider", "TourProvider", "TravelataProvider", "default_providers"]
