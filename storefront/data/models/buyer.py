# storefront/data/models/buyer.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Uuid, CheckConstraint
from sqlalchemy.orm import relationship

from storefront.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class BuyerModel(Base):
    __tablename__ = "buyers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=False)
    phone_number = Column(String, nullable=False, unique=True)

    referral_code = Column(String(16), nullable=True, unique=True)
    referred_by_id = Column(Uuid, ForeignKey("buyers.id"), nullable=True)
    referral_coins = Column(Integer, nullable=False, default=0)
    total_referrals = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    __table_args__ = (CheckConstraint("referral_coins >= 0", name="ck_buyer_coins_non_negative"),)


class ReferralHistoryModel(Base):
    __tablename__ = "referral_history"

    id = Column(Integer, primary_key=True)
    referrer_id = Column(Uuid, ForeignKey("buyers.id"), nullable=False, index=True)
    referred_user_id = Column(Uuid, ForeignKey("buyers.id"), nullable=False)
    order_id = Column(Uuid, ForeignKey("orders.id"), nullable=True)

    coins_earned = Column(Integer, nullable=False)
    order_amount = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    referred_user = relationship("BuyerModel", foreign_keys=[referred_user_id])


class SavedAddressModel(Base):
    __tablename__ = "saved_addresses"

    id = Column(Integer, primary_key=True)
    buyer_id = Column(Uuid, ForeignKey("buyers.id"), nullable=False, index=True)

    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    address = Column(String, nullable=False)
    city = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
