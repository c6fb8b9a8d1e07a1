"""Tests for the client-side placeholder quote."""
from app.client.estimate import placeholder_quote


def test_matches_server_math_for_name_derived_metal():
    quote = placeholder_quote('18K Yellow Gold', 10, 7500, 83, stones=[(56000, 1)])

    assert quote.inr.price == 140313
    assert quote.usd.price == 1691


def test_applies_name_multipliers():
    quote = placeholder_quote('18K Rose Gold', 10, 7500, 83)
    # 10 * 7500 * 0.75 * 1.05
    assert quote.inr.breakdown.metal_cost == 59063


def test_no_metal_and_empty_slots():
    quote = placeholder_quote(None, 0, 7500, 83, stones=[None, None, (3000, 0.5)])

    assert quote.inr.breakdown.metal_cost == 0
    assert quote.inr.breakdown.other_stone_cost == 1500
