from typing import Any, List, Optional, Tuple
from sqlalchemy.orm import Session

from ..config.logging import get_logger, log_audit_event
from ..core.exceptions import BalanceConfirmationRequired
from ..domain.balances import BalanceState
from ..domain.lines import money
from ..models.collection import Collection, CollectionType
from ..models.order import Order
from ..models.user import User
from ..repositories.collection_repo import CollectionRepository, collection_repository
from ..repositories.order_repo import OrderRepository, order_repository

logger = get_logger(__name__)


class BalanceService:
    def __init__(
        self,
        db: Session,
        orders: OrderRepository = order_repository,
        collections: CollectionRepository = collection_repository
    ):
        self.db = db
        self.orders = orders
        self.collections = collections

    def reconcile(self, order: Order, cheque_balance: Optional[Any] = None,
                  amount_paid: Optional[Any] = None) -> BalanceState:
        """Apply edits in the order a user makes them: paid amount, then cheque."""
        state = BalanceState.from_order(order)
        if amount_paid is not None:
            state = state.with_amount_paid(amount_paid)
        if cheque_balance is not None:
            state = state.with_cheque_balance(cheque_balance)
        return state

    def save_balances(self, actor: User, order_id: str, cheque_balance: Optional[Any] = None,
                      amount_paid: Optional[Any] = None, confirm: bool = False) -> Tuple[Order, BalanceState]:
        order = self.orders.get_or_404(self.db, order_id)
        state = self.reconcile(order, cheque_balance=cheque_balance, amount_paid=amount_paid)

        if state.requires_confirmation and not confirm:
            raise BalanceConfirmationRequired(order.id, money(state.outstanding), money(state.total))
        if state.requires_confirmation:
            logger.warning(
                f"Order {order.id}: saving balances {state.outstanding} above total {state.total} (confirmed)"
            )

        order = self.orders.update(self.db, db_obj=order, obj_in={
            "cheque_balance": money(state.cheque_balance),
            "credit_balance": money(state.credit_balance),
        })
        self._record_collections(order, state)

        log_audit_event("balances_saved", actor.id, order.id, amount=money(state.outstanding),
                        details=f"cheque {money(state.cheque_balance)}, credit {money(state.credit_balance)}")
        return order, state

    def _record_collections(self, order: Order, state: BalanceState) -> List[Collection]:
        collected_by = order.assigned_user.name if order.assigned_user is not None else None
        records = []
        for collection_type, amount in state.collection_entries():
            records.append(self.collections.upsert(
                self.db,
                order_id=order.id,
                collection_type=CollectionType(collection_type),
                customer_id=order.customer_id,
                amount=money(amount),
                collected_by=collected_by
            ))
        return records
