"""
Balance reconciliation for partially paid orders.

While an order is being edited ``amount_paid + cheque_balance +
credit_balance`` equals the order total. Credit is the dependent field:
it is recomputed whenever the cheque amount or the paid amount changes and
is never set directly.
"""
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, List, Tuple

from .lines import ZERO, to_decimal


def _non_negative(value: Any) -> Decimal:
    return max(ZERO, to_decimal(value))


@dataclass(frozen=True)
class BalanceState:
    total: Decimal
    amount_paid: Decimal = ZERO
    cheque_balance: Decimal = ZERO
    credit_balance: Decimal = ZERO

    @classmethod
    def from_order(cls, order: Any) -> "BalanceState":
        """Open the balances of a stored order, deriving the paid amount."""
        total = to_decimal(order.total_amount)
        cheque = _non_negative(order.cheque_balance)
        credit = _non_negative(order.credit_balance)
        return cls(
            total=total,
            amount_paid=max(ZERO, total - cheque - credit),
            cheque_balance=cheque,
            credit_balance=credit,
        )

    def with_cheque_balance(self, value: Any) -> "BalanceState":
        cheque = _non_negative(value)
        credit = max(ZERO, self.total - self.amount_paid - cheque)
        return replace(self, cheque_balance=cheque, credit_balance=credit)

    def with_amount_paid(self, value: Any) -> "BalanceState":
        paid = _non_negative(value)
        credit = max(ZERO, self.total - self.cheque_balance - paid)
        return replace(self, amount_paid=paid, credit_balance=credit)

    @property
    def outstanding(self) -> Decimal:
        return self.cheque_balance + self.credit_balance

    @property
    def requires_confirmation(self) -> bool:
        """True when the pending balances exceed the order total."""
        return self.outstanding > self.total

    def collection_entries(self) -> List[Tuple[str, Decimal]]:
        """``(collection_type, amount)`` for every nonzero balance."""
        entries = []
        if self.cheque_balance > 0:
            entries.append(("cheque", self.cheque_balance))
        if self.credit_balance > 0:
            entries.append(("credit", self.credit_balance))
        return entries
