from __future__ import annotations

import pytest

from tourwise.exceptions import InvalidSearchSpecification
from tourwise.services.hotel_identity import group_offers
from tourwise.services.offer import MealPlan
from tourwise.services.ranking import build_facets, paginate, rank_cards
from tourwise.services.scoring_engine import MatchResult
from tourwise.services.tour_card_builder import build_tour_card


def _cards(offers, scores=None):
    matches = {o.offer_id: MatchResult(score=s) for o, s in zip(offers, scores)} if scores else None
    return [build_tour_card(g, matches) for g in group_offers(offers)]


def test_price_sort_ascending(make_offer):
    offers = [
        make_offer(hotel_name="Alpha", external_id="1", price=150_000),
        make_offer(hotel_name="Bravo", external_id="2", price=120_000),
        make_offer(hotel_name="Charlie", external_id="3", price=80_000),
    ]
    ranked = rank_cards(_cards(offers), "price")
    assert [c.price_range.min for c in ranked] == [80_000, 120_000, 150_000]


def test_match_sort_descending_with_unscored_last(make_offer):
    offers = [
        make_offer(hotel_name="Alpha", external_id="1"),
        make_offer(hotel_name="Bravo", external_id="2"),
    ]
    cards = _cards(offers, scores=[60.0, 90.0])
    cards += _cards([make_offer(hotel_name="Unscored", external_id="3")])

    ranked = rank_cards(cards, "match")
    assert [c.hotel.name for c in ranked] == ["Bravo", "Alpha", "Unscored"]


def test_stars_and_rating_sorts(make_offer):
    offers = [
        make_offer(hotel_name="Alpha", external_id="1", stars=3, hotel_rating=9.5),
        make_offer(hotel_name="Bravo", external_id="2", stars=5, hotel_rating=7.0),
        make_offer(hotel_name="Charlie", external_id="3", stars=None, hotel_rating=None),
    ]
    cards = _cards(offers)

    assert [c.hotel.name for c in rank_cards(cards, "stars")] == ["Bravo", "Alpha", "Charlie"]
    assert [c.hotel.name for c in rank_cards(cards, "rating")] == ["Alpha", "Bravo", "Charlie"]


def test_sort_is_stable_for_equal_keys(make_offer):
    offers = [make_offer(hotel_name=f"Hotel {n}", external_id=str(i), price=100_000)
              for i, n in enumerate(["A", "B", "C"])]
    cards = _cards(offers)
    assert rank_cards(cards, "price") == cards


def test_unknown_sort_key_rejected(make_offer):
    with pytest.raises(InvalidSearchSpecification):
        rank_cards(_cards([make_offer()]), "distance")


def test_pagination_slices_and_counts():
    items = list(range(45))

    first = paginate(items, page=1, page_size=20)
    last = paginate(items, page=3, page_size=20)

    assert first.items == list(range(20))
    assert last.items == list(range(40, 45))
    assert first.total == 45
    assert first.total_pages == 3
    assert last.pagination() == {"page": 3, "page_size": 20, "total": 45, "total_pages": 3}


def test_pages_cover_every_item_exactly_once():
    items = list(range(23))
    collected = []
    page = paginate(items, page=1, page_size=5)
    for n in range(1, page.total_pages + 1):
        collected.extend(paginate(items, page=n, page_size=5).items)
    assert collected == items


def test_page_past_end_is_empty():
    page = paginate(list(range(5)), page=4, page_size=5)
    assert page.items == []
    assert page.total == 5
    assert page.total_pages == 1


def test_empty_result_has_zero_pages():
    page = paginate([], page=1, page_size=20)
    assert page.items == []
    assert page.total_pages == 0


@pytest.mark.parametrize("page,page_size", [(0, 20), (-1, 20), (1, 0)])
def test_invalid_page_arguments_rejected(page, page_size):
    with pytest.raises(InvalidSearchSpecification):
        paginate([1, 2, 3], page=page, page_size=page_size)


def test_facets_count_cards_and_options(make_offer):
    offers = [
        make_offer(hotel_name="Alpha", provider="leveltravel", external_id="1", stars=5,
                   meal_plan=MealPlan.ALL_INCLUSIVE, price=100_000),
        make_offer(hotel_name="Alpha", provider="travelata", external_id="2", stars=5,
                   meal_plan=MealPlan.BREAKFAST, price=90_000),
        make_offer(hotel_name="Bravo", provider="sletat", external_id="3", stars=4,
                   meal_plan=MealPlan.ALL_INCLUSIVE, price=70_000),
    ]
    facets = build_facets(_cards(offers)).to_dict()

    assert facets["price_range"] == {"min": 70_000, "max": 100_000}
    assert facets["stars"] == [{"value": 5, "count": 1}, {"value": 4, "count": 1}]
    assert facets["meals"] == [{"value": "BB", "count": 1}, {"value": "AI", "count": 2}]
    assert facets["providers"] == [
        {"value": "leveltravel", "count": 1},
        {"value": "sletat", "count": 1},
        {"value": "travelata", "count": 1},
    ]


def test_facets_for_empty_results():
    facets = build_facets([]).to_dict()
    assert facets["price_range"] == {"min": None, "max": None}
    assert facets["stars"] == []


def test_price_sort_scenario_keeps_ties_in_input_order(make_offer):
    offers = [
        make_offer(hotel_name="Alpha", external_id="1", price=300),
        make_offer(hotel_name="Bravo", external_id="2", price=100),
        make_offer(hotel_name="Charlie", external_id="3", price=200),
        make_offer(hotel_name="Delta", external_id="4", price=100),
    ]
    ranked = rank_cards(_cards(offers), "price")

    assert [c.price_range.min for c in ranked] == [100, 100, 200, 300]
    assert [c.hotel.name for c in ranked[:2]] == ["Bravo", "Delta"]


def test_single_page_of_full_size_returns_everything():
    items = list(range(17))
    page = paginate(items, page=1, page_size=len(items))
    assert page.items == items
    assert paginate(items, page=2, page_size=len(items)).items == []
