from __future__ import annotations

import random

from tourwise.services.hotel_identity import group_offers, hotel_key, normalize_hotel_name
from tourwise.services.tour_card_builder import build_tour_card


def test_normalize_hotel_name_drops_generic_words_and_punctuation():
    assert normalize_hotel_name("Sunrise Resort & Spa") == "sunrise"
    assert normalize_hotel_name("  SUNRISE   resort ") == "sunrise"
    assert normalize_hotel_name("Blue-Lagoon Hotel") == "blue lagoon"
    assert normalize_hotel_name("Отель Лагуна") == "лагуна"


def test_normalize_keeps_name_made_only_of_generic_words():
    assert normalize_hotel_name("The Resort") == "the resort"
    assert normalize_hotel_name("") == ""
    assert normalize_hotel_name(None) == ""


def test_sunrise_offers_from_two_providers_share_a_key(make_offer):
    a = make_offer(provider="leveltravel", external_id="a1", hotel_name="Sunrise Resort & Spa",
                   country="turkey", stars=5)
    b = make_offer(provider="travelata", external_id="b1", hotel_name="SUNRISE RESORT",
                   country="Turkey", stars=5)

    assert hotel_key(a) == hotel_key(b) == "sunrise|turkey|5"
    groups = group_offers([a, b])
    assert len(groups) == 1
    assert {o.provider for o in groups[0].offers} == {"leveltravel", "travelata"}


def test_key_degrades_without_stars(make_offer):
    assert hotel_key(make_offer(stars=None)) == "sunrise|turkey"
    assert hotel_key(make_offer(stars=0)) == "sunrise|turkey"


def test_nameless_offers_key_on_name_and_country(make_offer):
    a = make_offer(hotel_name="", external_id="x", stars=5)
    b = make_offer(hotel_name="", external_id="y", stars=4)
    c = make_offer(hotel_name="", external_id="z", country="egypt")

    assert hotel_key(a) == hotel_key(b) == "|turkey"
    assert hotel_key(c) == "|egypt"
    groups = group_offers([a, b, c])
    assert sum(len(g.offers) for g in groups) == 3
    assert len(groups) == 2


def test_undated_offer_sorts_after_dated_one_at_same_price(make_offer):
    undated = make_offer(provider="leveltravel", external_id="1", start_date=None)
    dated = make_offer(provider="travelata", external_id="2")

    group = group_offers([undated, dated])[0]
    assert [o.external_id for o in group.offers] == ["2", "1"]
    assert build_tour_card(group).best_price.offer is dated


def test_different_stars_are_different_hotels(make_offer):
    groups = group_offers([make_offer(stars=4, external_id="1"), make_offer(stars=5, external_id="2")])
    assert len(groups) == 2


def test_grouping_is_order_independent(make_offer):
    offers = [
        make_offer(provider=p, external_id=f"{p}-{i}", hotel_name=name, price=price)
        for i, (p, name, price) in enumerate([
            ("leveltravel", "Sunrise Resort", 120_000),
            ("travelata", "Sunrise Resort & Spa", 110_000),
            ("sletat", "Blue Lagoon", 90_000),
            ("travelata", "Blue Lagoon Hotel", 90_000),
            ("sletat", "Grand Palace", 200_000),
        ])
    ]
    expected = group_offers(offers)

    rng = random.Random(7)
    for _ in range(10):
        shuffled = offers[:]
        rng.shuffle(shuffled)
        assert group_offers(shuffled) == expected


def test_every_offer_lands_in_exactly_one_group(make_offer):
    offers = [make_offer(external_id=str(i), hotel_name=f"Hotel {i % 3}") for i in range(9)]
    groups = group_offers(offers)

    members = [o for g in groups for o in g.offers]
    assert len(members) == len(offers)
    assert set(members) == set(offers)


def test_group_members_sorted_by_price_then_start_then_provider(make_offer):
    cheap = make_offer(provider="sletat", external_id="3", price=90_000)
    tie_a = make_offer(provider="leveltravel", external_id="1", price=100_000)
    tie_b = make_offer(provider="travelata", external_id="2", price=100_000)

    group = group_offers([tie_b, tie_a, cheap])[0]
    assert [o.external_id for o in group.offers] == ["3", "1", "2"]


def test_sunrise_scenario_builds_one_card_with_cheapest_best_price(make_offer):
    a = make_offer(provider="provider-a", external_id="a", hotel_name="Sunrise Resort", price=89_500)
    b = make_offer(provider="provider-b", external_id="b", hotel_name="sunrise resort", price=91_200)

    groups = group_offers([b, a])
    assert len(groups) == 1
    card = build_tour_card(groups[0])
    assert (card.price_range.min, card.price_range.max) == (89_500, 91_200)
    assert card.best_price.offer is a
