"""Hotel identity resolver — derives a dedup key per offer and groups offers by hotel."""

import re
from collections import defaultdict
from dataclasses import dataclass

from tourwise.services.offer import Offer

# Generic words providers add or drop freely around the real hotel name
_GENERIC_TOKENS = {
    "hotel", "hotels", "resort", "resorts", "spa", "and", "the",
    "отель", "резорт", "спа",
}

_PUNCTUATION = re.compile(r"[^\w\s]|_", re.UNICODE)
_WHITESPACE = re.compile(r"\s+")


def normalize_hotel_name(name: str | None) -> str:
    """Lower-case, strip punctuation, collapse whitespace, drop generic tokens.

    "Sunrise Resort & Spa" and "sunrise  resort" both become "sunrise".
    If dropping generic tokens would leave nothing, the collapsed name is kept.
    """
    if not name:
        return ""
    collapsed = _WHITESPACE.sub(" ", _PUNCTUATION.sub(" ", name.lower())).strip()
    tokens = [t for t in collapsed.split(" ") if t and t not in _GENERIC_TOKENS]
    return " ".join(tokens) if tokens else collapsed


def normalize_location(value: str | None) -> str:
    if not value:
        return ""
    return _WHITESPACE.sub(" ", _PUNCTUATION.sub(" ", value.lower())).strip()


def hotel_key(offer: Offer) -> str:
    """Stable identity for the physical hotel an offer refers to.

    name + country + stars; degrades to name + country when the name or the
    stars are unknown, so nameless offers in one country share a key.
    """
    name = normalize_hotel_name(offer.hotel_name)
    country = normalize_location(offer.country)
    if not name or not offer.stars:
        return f"{name}|{country}"
    return f"{name}|{country}|{offer.stars}"


def offer_sort_key(offer: Offer) -> tuple:
    """Deterministic member order: price, earliest start (undated last), provider, id."""
    return (
        offer.price,
        offer.start_date is None,
        offer.start_date.toordinal() if offer.start_date else 0,
        offer.provider,
        offer.external_id,
    )


@dataclass(frozen=True)
class OfferGroup:
    key: str
    offers: tuple[Offer, ...]


def group_offers(offers: list[Offer]) -> list[OfferGroup]:
    """Group offers sharing a hotel key.

    Accumulates into a dict keyed by hotel key, then orders groups by key and
    members by offer_sort_key, so any permutation of the input gives the same
    groups in the same order. Every offer lands in exactly one group.
    """
    buckets: dict[str, list[Offer]] = defaultdict(list)
    for offer in offers:
        buckets[hotel_key(offer)].append(offer)

    return [
        OfferGroup(key=key, offers=tuple(sorted(members, key=offer_sort_key)))
        for key, members in sorted(buckets.items())
    ]
