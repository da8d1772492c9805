# storefront/api/routers/buyers.py
from uuid import UUID

from fastapi import APIRouter, Depends

from storefront.api.deps import get_buyer_service
from storefront.domain.schemas import (
    BuyerCreate,
    BuyerOut,
    ReferralCodeOut,
    ReferralStatsOut,
    SavedAddressOut,
)
from storefront.services.buyer_service import BuyerService

router = APIRouter(prefix="/buyers", tags=["buyers"])


@router.post("/", response_model=BuyerOut, status_code=201)
def register_buyer(payload: BuyerCreate, svc: BuyerService = Depends(get_buyer_service)):
    """Registers a buyer, optionally linking the referrer by referral code."""
    return svc.register_buyer(payload)


@router.get("/{buyer_id}", response_model=BuyerOut)
def get_buyer(buyer_id: UUID, svc: BuyerService = Depends(get_buyer_service)):
    return svc.get_buyer(buyer_id)


@router.get("/{buyer_id}/referral-code", response_model=ReferralCodeOut)
def get_referral_code(buyer_id: UUID, svc: BuyerService = Depends(get_buyer_service)):
    return svc.get_referral_code(buyer_id)


@router.get("/{buyer_id}/referral-stats", response_model=ReferralStatsOut)
def get_referral_stats(buyer_id: UUID, svc: BuyerService = Depends(get_buyer_service)):
    return svc.get_referral_stats(buyer_id)


@router.get("/{buyer_id}/saved-address", response_model=SavedAddressOut | None)
def get_saved_address(buyer_id: UUID, svc: BuyerService = Depends(get_buyer_service)):
    """Most recently used shipping address, null when the buyer never ordered."""
    return svc.get_latest_address(buyer_id)
