"""Order intake: turns "<price> <volume>" or "<price> <pct>%" into an order triple.

Volume form works for both directions: volume is the base-currency value to
trade, so amount = volume / price. Percentage form is sell-only and sizes the
order as a share of the user's current holdings of the token.
"""

import logging
import math
from dataclasses import dataclass

from limit_engine.interfaces import BalanceProvider
from limit_engine.models.errors import (
    BalanceUnavailableError,
    InsufficientBalanceError,
    OrderValidationError,
)
from limit_engine.models.order import OrderDirection

logger = logging.getLogger(__name__)

FORMAT_HINT = (
    "Enter price and amount separated by a space, e.g. '0.5 10' "
    "(or '0.5 50%' to sell half of your balance)"
)


@dataclass(frozen=True)
class ValidatedOrder:
    price: float
    amount: float
    total: float


def _parse_positive(text: str, what: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise OrderValidationError(
            f"Invalid {what} format '{text}'. Please enter a number."
        ) from None
    if not math.isfinite(value):
        raise OrderValidationError(f"Invalid {what} format '{text}'. Please enter a number.")
    if value <= 0:
        raise OrderValidationError(f"{what.capitalize()} must be greater than zero")
    return value


class OrderIntakeValidator:
    def __init__(self, balance_provider: BalanceProvider):
        self.balances = balance_provider

    def parse_and_validate(
        self,
        raw_text: str,
        direction: OrderDirection,
        token_address: str,
        token_symbol: str,
        user_id: int,
    ) -> ValidatedOrder:
        """Validate raw price/amount input.

        Raises OrderValidationError for malformed or out-of-range input and
        InsufficientBalanceError when a sell exceeds the user's holdings.
        Reads the balance at most once, and only for sells.
        """
        parts = raw_text.split()
        if len(parts) != 2:
            raise OrderValidationError(f"Invalid format. {FORMAT_HINT}")

        price = _parse_positive(parts[0], "price")
        size_text = parts[1]

        if size_text.endswith("%"):
            if direction != OrderDirection.SELL:
                raise OrderValidationError(
                    "Percentage amounts are only supported for sell orders"
                )
            pct = _parse_positive(size_text[:-1], "percentage")
            if pct > 100:
                raise OrderValidationError("Percentage cannot exceed 100%")

            balance = self.balances.get_balance(user_id, token_address)
            if balance <= 0:
                raise InsufficientBalanceError(
                    f"Insufficient balance. You have no {token_symbol} tokens",
                    required=0.0,
                    available=balance,
                )
            amount = balance * (pct / 100)
            total = amount * price
            logger.debug(
                "Intake %s%% of %.6f %s -> %.6f at %.9f", pct, balance, token_symbol, amount, price,
            )
            return ValidatedOrder(price=price, amount=amount, total=total)

        volume = _parse_positive(size_text, "amount")
        amount = volume / price
        total = volume

        if direction == OrderDirection.SELL:
            balance = self.balances.get_balance(user_id, token_address)
            if amount > balance:
                raise InsufficientBalanceError(
                    f"Insufficient balance. Order requires {amount:.6f} {token_symbol} "
                    f"but you only have {balance:.6f}",
                    required=amount,
                    available=balance,
                )
        return ValidatedOrder(price=price, amount=amount, total=total)

    def percentage_of_balance(
        self, amount: float, token_address: str, user_id: int
    ) -> float | None:
        """Share of the user's holdings that `amount` represents, for display only."""
        try:
            balance = self.balances.get_balance(user_id, token_address)
        except BalanceUnavailableError:
            logger.debug("No balance for user %d, %s", user_id, token_address)
            return None
        if balance <= 0:
            return None
        return amount / balance * 100
