# storefront/domain/discount.py
from dataclasses import dataclass
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR

from storefront.utils.settings import COIN_RATE, MAX_DISCOUNT_RATE

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class DiscountQuote:
    available_coins: int
    max_possible_discount: Decimal
    coin_value: Decimal
    final_discount: Decimal
    coins_used: int
    coin_rate: Decimal


def calculate_referral_discount(
    available_coins: int,
    subtotal: Decimal,
    coin_rate: Decimal = COIN_RATE,
) -> DiscountQuote:
    """
    Turn a coin balance and a pre-delivery subtotal into a bounded discount.

    The discount is capped at 10% of the subtotal (floored to a whole unit)
    and at the value of the coins. Coins consumed are rounded up, so the last
    coin may be partially wasted but the discount never exceeds what the
    consumed coins are worth. Never touches the buyer's balance.
    """
    if available_coins < 0:
        raise ValueError("Coin balance cannot be negative")

    subtotal = Decimal(subtotal)

    if available_coins == 0 or subtotal <= 0:
        return DiscountQuote(
            available_coins=available_coins,
            max_possible_discount=ZERO,
            coin_value=ZERO,
            final_discount=ZERO,
            coins_used=0,
            coin_rate=coin_rate,
        )

    max_possible_discount = max_discount_for(subtotal)
    coin_value = available_coins * coin_rate
    final_discount = min(max_possible_discount, coin_value)
    coins_used = int((final_discount / coin_rate).to_integral_value(rounding=ROUND_CEILING))

    return DiscountQuote(
        available_coins=available_coins,
        max_possible_discount=max_possible_discount,
        coin_value=coin_value,
        final_discount=final_discount,
        coins_used=coins_used,
        coin_rate=coin_rate,
    )


def max_discount_for(subtotal: Decimal) -> Decimal:
    """10% of the subtotal, floored to a whole currency unit."""
    return (Decimal(subtotal) * MAX_DISCOUNT_RATE).to_integral_value(rounding=ROUND_FLOOR)


def max_usable_coins(subtotal: Decimal, coin_rate: Decimal = COIN_RATE) -> int:
    max_possible_discount = max_discount_for(subtotal)
    if max_possible_discount <= 0:
        return 0
    return int((max_possible_discount / coin_rate).to_integral_value(rounding=ROUND_CEILING))


def compute_final_amount(total_amount: Decimal, delivery_price: Decimal, referral_discount: Decimal) -> Decimal:
    final_amount = Decimal(total_amount) + Decimal(delivery_price) - Decimal(referral_discount)
    if final_amount < 0:
        raise ValueError("Final amount cannot be negative")
    return final_amount


def referral_reward_coins(order_total: Decimal, reward_rate: Decimal) -> int:
    return int((Decimal(order_total) * reward_rate).to_integral_value(rounding=ROUND_FLOOR))
