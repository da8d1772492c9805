import secrets
from typing import Callable

from sqlalchemy.orm import Session

from storefront.data.models.buyer import BuyerModel
from storefront.domain.errors import NotFoundError
from storefront.domain.schemas import BuyerCreate
from storefront.repos.buyer_repo import BuyerRepo
from storefront.utils.settings import REFERRAL_CODE_LENGTH, REFERRAL_LINK_BASE
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def random_referral_code(length: int = REFERRAL_CODE_LENGTH) -> str:
    return secrets.token_hex(length).upper()[:length]


class BuyerService:
    def __init__(self, db: Session, code_factory: Callable[[], str] = random_referral_code):
        self.repo = BuyerRepo(db)
        self.code_factory = code_factory

    def generate_referral_code(self) -> str:
        #collision is unlikely but possible, keep drawing until the code is free
        while True:
            code = self.code_factory()
            if not self.repo.referral_code_exists(code):
                return code
            logger.info(f"Referral code {code} already taken, drawing another")

    def register_buyer(self, payload: BuyerCreate) -> BuyerModel:
        if self.repo.get_by_username_or_phone(payload.username, payload.phone_number):
            raise ValueError("Username or phone number already exists")

        buyer = BuyerModel(
            username=payload.username,
            name=payload.name,
            phone_number=payload.phone_number,
            referral_code=self.generate_referral_code(),
            referral_coins=0,
            total_referrals=0,
        )

        try:
            if payload.referral_code:
                referrer = self.repo.get_by_referral_code(payload.referral_code)
                if referrer:
                    logger.info(f"Buyer {payload.username} referred by {referrer.id}")
                    buyer.referred_by_id = referrer.id
                    # only the counter moves now, coins come with delivered orders
                    self.repo.increment_total_referrals(referrer.id)
                else:
                    logger.info(f"Unknown referral code {payload.referral_code}, ignoring")

            self.repo.add_buyer(buyer)
            self.repo.commit()
        except Exception as e:
            logger.error(f"Registration of {payload.username} failed: {e}")
            self.repo.rollback()
            raise

        logger.info(f"Registered buyer {buyer.id} with referral code {buyer.referral_code}")
        return buyer

    def get_buyer(self, buyer_id) -> BuyerModel:
        buyer = self.repo.get_buyer(buyer_id)
        if not buyer:
            raise NotFoundError("Buyer", buyer_id)
        return buyer

    def get_referral_code(self, buyer_id) -> dict:
        buyer = self.get_buyer(buyer_id)

        if not buyer.referral_code:
            buyer.referral_code = self.generate_referral_code()
            self.repo.commit()
            logger.info(f"Issued referral code {buyer.referral_code} to buyer {buyer_id}")

        return {
            "referral_code": buyer.referral_code,
            "referral_link": f"{REFERRAL_LINK_BASE}/{buyer.referral_code}",
            "referral_coins": buyer.referral_coins,
            "total_referrals": buyer.total_referrals,
        }

    def get_referral_stats(self, buyer_id) -> dict:
        buyer = self.get_buyer(buyer_id)
        history = self.repo.get_referral_history(buyer_id)

        return {
            "total_referrals": buyer.total_referrals,
            "referral_coins": buyer.referral_coins,
            "referral_history": [
                {
                    "referred_user_id": h.referred_user_id,
                    "referred_user_name": h.referred_user.name if h.referred_user else None,
                    "coins_earned": h.coins_earned,
                    "order_amount": h.order_amount,
                    "created_at": h.created_at,
                }
                for h in history
            ],
        }

    def get_latest_address(self, buyer_id):
        self.get_buyer(buyer_id)
        return self.repo.get_latest_address(buyer_id)
