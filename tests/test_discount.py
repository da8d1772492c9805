from decimal import Decimal

import pytest

from storefront.domain.discount import (
    calculate_referral_discount,
    compute_final_amount,
    max_discount_for,
    max_usable_coins,
    referral_reward_coins,
)


def test_coins_are_the_binding_limit():
    quote = calculate_referral_discount(1000, Decimal("1000"))

    assert quote.max_possible_discount == Decimal("100")
    assert quote.coin_value == Decimal("20")
    assert quote.final_discount == Decimal("20")
    assert quote.coins_used == 1000


def test_ten_percent_cap_is_the_binding_limit():
    quote = calculate_referral_discount(10000, Decimal("1000"))

    assert quote.max_possible_discount == Decimal("100")
    assert quote.coin_value == Decimal("200")
    assert quote.final_discount == Decimal("100")
    assert quote.coins_used == 5000


def test_cap_is_floored_to_whole_units():
    assert max_discount_for(Decimal("999")) == Decimal("99")
    assert max_discount_for(Decimal("9.99")) == Decimal("0")


def test_partial_coin_is_rounded_up():
    # cap 1, coin value 1.02, so 1 / 0.02 = 50 coins exactly
    quote = calculate_referral_discount(51, Decimal("15"))
    assert quote.final_discount == Decimal("1")
    assert quote.coins_used == 50

    # 3 coins are worth 0.06, all of them are spent
    quote = calculate_referral_discount(3, Decimal("500"))
    assert quote.final_discount == Decimal("0.06")
    assert quote.coins_used == 3


@pytest.mark.parametrize("coins,subtotal", [(0, "1000"), (500, "0"), (500, "-10")])
def test_nothing_to_discount(coins, subtotal):
    quote = calculate_referral_discount(coins, Decimal(subtotal))
    assert quote.final_discount == Decimal("0")
    assert quote.coins_used == 0


def test_negative_balance_is_rejected():
    with pytest.raises(ValueError):
        calculate_referral_discount(-1, Decimal("100"))


@pytest.mark.parametrize("coins", [1, 7, 49, 50, 333, 5000, 123456])
@pytest.mark.parametrize("subtotal", ["1", "10", "99.99", "1000", "2500.50"])
def test_discount_stays_within_both_bounds(coins, subtotal):
    subtotal = Decimal(subtotal)
    quote = calculate_referral_discount(coins, subtotal)

    assert Decimal("0") <= quote.final_discount
    assert quote.final_discount <= subtotal * Decimal("0.10")
    assert quote.final_discount <= coins * Decimal("0.02")
    assert quote.coins_used <= coins


def test_max_usable_coins():
    assert max_usable_coins(Decimal("1000")) == 5000
    assert max_usable_coins(Decimal("5")) == 0


def test_final_amount():
    assert compute_final_amount(Decimal("1000"), Decimal("150"), Decimal("100")) == Decimal("1050")
    with pytest.raises(ValueError):
        compute_final_amount(Decimal("10"), Decimal("0"), Decimal("11"))


def test_referral_reward_is_floored():
    assert referral_reward_coins(Decimal("1000"), Decimal("0.02")) == 20
    assert referral_reward_coins(Decimal("149.99"), Decimal("0.02")) == 2
    assert referral_reward_coins(Decimal("49"), Decimal("0.02")) == 0
