# storefront/repos/buyer_repo.py
from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from storefront.data.models.buyer import BuyerModel, ReferralHistoryModel, SavedAddressModel


class BuyerRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_buyer(self, buyer_id) -> BuyerModel | None:
        return self.db.get(BuyerModel, buyer_id)

    def get_by_referral_code(self, code: str) -> BuyerModel | None:
        return self.db.execute(
            select(BuyerModel).where(BuyerModel.referral_code == code)
        ).scalar_one_or_none()

    def referral_code_exists(self, code: str) -> bool:
        return self.get_by_referral_code(code) is not None

    def get_by_username_or_phone(self, username: str, phone_number: str) -> BuyerModel | None:
        return self.db.execute(
            select(BuyerModel).where(
                or_(BuyerModel.username == username, BuyerModel.phone_number == phone_number)
            )
        ).scalars().first()

    def add_buyer(self, buyer: BuyerModel) -> BuyerModel:
        self.db.add(buyer)
        self.db.flush()
        return buyer

    def adjust_coins(self, buyer_id, delta: int) -> bool:
        """
        Atomic conditional update of the coin balance.
        UPDATE buyers SET referral_coins = referral_coins + :delta
        WHERE id = :id AND referral_coins + :delta >= 0
        Returns False when the buyer is missing or the balance would go negative.
        """
        result = self.db.execute(
            update(BuyerModel)
            .where(
                BuyerModel.id == buyer_id,
                BuyerModel.referral_coins + delta >= 0,
            )
            .values(referral_coins=BuyerModel.referral_coins + delta)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def increment_total_referrals(self, buyer_id) -> None:
        self.db.execute(
            update(BuyerModel)
            .where(BuyerModel.id == buyer_id)
            .values(total_referrals=BuyerModel.total_referrals + 1)
            .execution_options(synchronize_session=False)
        )

    def append_referral_history(self, entry: ReferralHistoryModel) -> ReferralHistoryModel:
        self.db.add(entry)
        self.db.flush()
        return entry

    def get_referral_history(self, buyer_id) -> list[ReferralHistoryModel]:
        return list(
            self.db.execute(
                select(ReferralHistoryModel)
                .where(ReferralHistoryModel.referrer_id == buyer_id)
                .order_by(ReferralHistoryModel.created_at.desc(), ReferralHistoryModel.id.desc())
            ).scalars()
        )

    def add_saved_address(self, address: SavedAddressModel) -> SavedAddressModel:
        self.db.add(address)
        self.db.flush()
        return address

    def get_latest_address(self, buyer_id) -> SavedAddressModel | None:
        return self.db.execute(
            select(SavedAddressModel)
            .where(SavedAddressModel.buyer_id == buyer_id)
            .order_by(SavedAddressModel.created_at.desc(), SavedAddressModel.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
