from __future__ import annotations
from decimal import Decimal
from typing import Literal

from tournament.config import ContestConfig

Category = Literal[1, 2, 3]

# Account currency per market; USDT is priced as USD.
MARKET_CURRENCY = {
    "crypto": "USDT",
    "moex": "RUB",
    "forex": "USD",
}

RATE_CURRENCY = {"USDT": "USD"}


def rate_currency(currency: str) -> str:
    return RATE_CURRENCY.get(currency, currency)


def to_reference(amount: Decimal, currency: str, contest: ContestConfig, rate: Decimal | None = None) -> Decimal:
    if rate_currency(currency) == contest.reference_currency:
        return amount
    if rate is None:
        raise ValueError(f"exchange rate required to convert {currency} to {contest.reference_currency}")
    return amount * rate


def classify(amount_in_reference: Decimal, contest: ContestConfig) -> Category:
    """
    1: below the lower bound
    2: lower bound (inclusive) to upper bound (exclusive)
    3: upper bound and above
    """
    if amount_in_reference < contest.category_lower_bound:
        return 1
    if amount_in_reference < contest.category_upper_bound:
        return 2
    return 3


def classify_deposit(amount: Decimal, currency: str, contest: ContestConfig, rate: Decimal | None = None) -> Category:
    return classify(to_reference(amount, currency, contest, rate), contest)
