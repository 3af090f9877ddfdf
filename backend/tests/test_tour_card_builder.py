from __future__ import annotations

from datetime import date

import pytest

from tourwise.services.hotel_identity import OfferGroup, group_offers
from tourwise.services.offer import MealPlan
from tourwise.services.scoring_engine import MatchResult
from tourwise.services.tour_card_builder import assign_best_price_badge, build_tour_card


def _group(*offers):
    groups = group_offers(list(offers))
    assert len(groups) == 1
    return groups[0]


def test_price_range_and_best_price(make_offer):
    card = build_tour_card(_group(
        make_offer(provider="leveltravel", external_id="1", price=120_000),
        make_offer(provider="travelata", external_id="2", price=95_000),
        make_offer(provider="sletat", external_id="3", price=130_000),
    ))

    assert card.price_range.min == 95_000
    assert card.price_range.max == 130_000
    assert card.best_price.offer.external_id == "2"
    assert [o.offer.price for o in card.options] == [95_000, 120_000, 130_000]


def test_best_price_tie_goes_to_earliest_start_then_provider(make_offer):
    late = make_offer(provider="leveltravel", external_id="1", price=100_000, start_date=date(2026, 7, 3))
    early_b = make_offer(provider="travelata", external_id="2", price=100_000, start_date=date(2026, 7, 1))
    early_a = make_offer(provider="sletat", external_id="3", price=100_000, start_date=date(2026, 7, 1))

    card = build_tour_card(_group(late, early_b, early_a))
    assert card.best_price.offer.provider == "sletat"


def test_recommended_is_highest_score_ties_to_lowest_price(make_offer):
    a = make_offer(provider="leveltravel", external_id="1", price=120_000)
    b = make_offer(provider="travelata", external_id="2", price=100_000)
    c = make_offer(provider="sletat", external_id="3", price=140_000)
    matches = {
        a.offer_id: MatchResult(score=80.0),
        b.offer_id: MatchResult(score=80.0),
        c.offer_id: MatchResult(score=60.0),
    }

    card = build_tour_card(_group(a, b, c), matches)
    assert card.recommended.offer is b
    assert card.match_score == 80.0


def test_recommended_falls_back_to_best_price_without_scores(make_offer):
    card = build_tour_card(_group(
        make_offer(external_id="1", price=120_000),
        make_offer(external_id="2", price=100_000),
    ))
    assert card.recommended is card.best_price
    assert card.match_score is None


def test_badges_from_thresholds(make_offer):
    a = make_offer(provider="leveltravel", external_id="1", price=100_000, price_old=125_000,
                   is_hot=True, instant_confirm=True)
    b = make_offer(provider="travelata", external_id="2", price=110_000, instant_confirm=True)
    matches = {a.offer_id: MatchResult(score=90.0), b.offer_id: MatchResult(score=70.0)}

    card = build_tour_card(_group(a, b), matches, high_match_threshold=85)
    kinds = {badge.kind: badge for badge in card.badges}

    assert kinds["high_match"].value == 90
    assert kinds["discount"].value == 20
    assert "hot" in kinds
    assert "instant_confirm" in kinds
    assert kinds["multi_provider"].value == 2
    assert "best_price" not in kinds


def test_no_high_match_badge_below_threshold(make_offer):
    a = make_offer(external_id="1")
    card = build_tour_card(_group(a), {a.offer_id: MatchResult(score=84.9)}, high_match_threshold=85)
    assert not card.has_badge("high_match")
    assert not card.has_badge("multi_provider")


def test_best_price_badge_goes_to_global_minimum(make_offer):
    cheap = build_tour_card(_group(make_offer(hotel_name="Cheap Inn", external_id="1", price=50_000)))
    pricey = build_tour_card(_group(make_offer(hotel_name="Palace", external_id="2", price=90_000)))

    assign_best_price_badge([pricey, cheap])
    assert cheap.has_badge("best_price")
    assert not pricey.has_badge("best_price")
    assert cheap.badges[0].kind == "best_price"


def test_best_value_prefers_all_inclusive_and_instant_confirm(make_offer):
    plain = make_offer(external_id="1", price=100_000, meal_plan=MealPlan.BREAKFAST)
    bonus = make_offer(external_id="2", price=101_000, meal_plan=MealPlan.ALL_INCLUSIVE, instant_confirm=True)

    card = build_tour_card(_group(plain, bonus))
    assert card.best_value.offer is bonus


def test_hotel_descriptor_merges_members(make_offer):
    a = make_offer(external_id="1", images=("a.jpg", "b.jpg"), hotel_rating=8.0, review_count=100,
                   beach_line=2, features={"wifi"})
    b = make_offer(provider="travelata", external_id="2", images=("b.jpg", "c.jpg"), hotel_rating=8.8,
                   review_count=50, beach_line=1, features={"pool", "kids_club"})

    hotel = build_tour_card(_group(a, b)).hotel
    assert hotel.images == ("a.jpg", "b.jpg", "c.jpg")
    assert hotel.rating == 8.8
    assert hotel.review_count == 150
    assert hotel.beach_line == 1
    assert hotel.features == frozenset({"wifi", "pool", "kids_club"})
    assert hotel.highlights == ("First beach line", "Free Wi-Fi", "Pool", "Kids club")


def test_empty_group_rejected():
    with pytest.raises(ValueError):
        build_tour_card(OfferGroup(key="x", offers=()))


def test_card_serializes(make_offer):
    a = make_offer()
    data = build_tour_card(_group(a), {a.offer_id: MatchResult(score=75.0)}).to_dict()
    assert data["hotel"]["name"] == "Sunrise Resort"
    assert data["recommended"]["match"]["score"] == 75.0
    assert data["providers"] == ["leveltravel"]
