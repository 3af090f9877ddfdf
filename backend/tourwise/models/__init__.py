from tourwise.models.offer import SearchRequestLog, TourOffer
from tourwise.models.profile import TravelProfile

__all__ = [
    "SearchRequestLog",
    "TourOffer",
    "TravelProfile",
]
