# storefront/repos/order_repo.py
from datetime import date

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.domain.errors import OrderIdConflict, OrderIdsExhausted

SORTABLE_FIELDS = {
    "createdAt": OrderModel.created_at,
    "created_at": OrderModel.created_at,
    "orderId": OrderModel.order_id,
    "order_id": OrderModel.order_id,
    "finalAmount": OrderModel.final_amount,
    "final_amount": OrderModel.final_amount,
    "status": OrderModel.status,
}


# XXXX is four digits, ids stay fixed width so string order equals numeric order
MAX_DAILY_SEQUENCE = 9999


def order_id_prefix(day: date) -> str:
    return f"ORD-{day.strftime('%Y%m%d')}-"


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def next_order_id(self, day: date) -> str:
        """Highest sequence already used on ``day`` plus one, starting at 0001."""
        prefix = order_id_prefix(day)
        last = self.db.execute(
            select(OrderModel.order_id)
            .where(OrderModel.order_id.like(f"{prefix}%"))
            .order_by(OrderModel.order_id.desc())
            .limit(1)
        ).scalar_one_or_none()

        sequence = int(last[len(prefix):]) + 1 if last else 1
        if sequence > MAX_DAILY_SEQUENCE:
            raise OrderIdsExhausted(f"No order ids left for {day.isoformat()}")
        return f"{prefix}{sequence:04d}"

    def add_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        try:
            self.db.flush()
        except IntegrityError as e:
            raise OrderIdConflict(f"Order id {order.order_id} already taken") from e
        return order

    def get_order(self, order_pk) -> OrderModel | None:
        return self.db.get(OrderModel, order_pk)

    def transition_status(self, order_pk, from_status: str, to_status: str, cancel_reason: str | None = None) -> bool:
        #compare-and-swap on the previous status, only one concurrent writer wins
        values = {"status": to_status}
        if cancel_reason is not None:
            values["cancel_reason"] = cancel_reason
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_pk, OrderModel.status == from_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def list_buyer_orders(self, buyer_id) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.buyer_id == buyer_id)
                .order_by(OrderModel.created_at.desc(), OrderModel.order_id.desc())
            ).scalars()
        )

    def list_seller_orders(
        self,
        seller_id,
        status: str | None = None,
        search: str | None = None,
        sort: str = "createdAt",
        direction: str = "desc",
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[OrderModel], int]:
        query = select(OrderModel).where(OrderModel.seller_id == seller_id)

        if status and status != "all":
            query = query.where(OrderModel.status == status)

        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    OrderModel.order_id.ilike(pattern),
                    OrderModel.first_name.ilike(pattern),
                    OrderModel.last_name.ilike(pattern),
                    OrderModel.city.ilike(pattern),
                )
            )

        total = self.db.execute(
            select(func.count()).select_from(query.subquery())
        ).scalar_one()

        column = SORTABLE_FIELDS.get(sort, OrderModel.created_at)
        query = query.order_by(column.desc() if direction == "desc" else column.asc())
        query = query.offset((page - 1) * limit).limit(limit)

        return list(self.db.execute(query).scalars()), total

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
