# storefront/data/seed.py
from decimal import Decimal

from storefront.data.database import SessionLocal
from storefront.data.models import BuyerModel, ProductModel, SellerModel
from storefront.services.buyer_service import random_referral_code
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _media(slug: str) -> list[dict]:
    return [
        {
            "type": "image",
            "url": f"https://cdn.nearglow.com/products/{slug}.jpg",
            "public_id": f"products/{slug}",
            "thumbnail": f"https://cdn.nearglow.com/products/{slug}_thumb.jpg",
        }
    ]


def seed():
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(SellerModel).first():
            return

        seller = SellerModel(name="Nearglow Demo Store")
        db.add(seller)
        db.flush()

        db.add_all(
            [
                ProductModel(
                    seller_id=seller.id,
                    name="Cotton Kurta",
                    price=Decimal("2500.00"),
                    sale_price=Decimal("2200.00"),
                    delivery_price=Decimal("150.00"),
                    stock=40,
                    colors=[
                        {"name": "White", "media": _media("kurta-white")},
                        {"name": "Navy", "media": _media("kurta-navy")},
                    ],
                ),
                ProductModel(
                    seller_id=seller.id,
                    name="Leather Sandals",
                    price=Decimal("3400.00"),
                    delivery_price=Decimal("200.00"),
                    stock=15,
                    colors=[],
                ),
            ]
        )

        db.add(
            BuyerModel(
                username="demo",
                name="Demo Buyer",
                phone_number="03001234567",
                referral_code=random_referral_code(),
                referral_coins=500,
            )
        )
        db.commit()
        logger.info(f"Seeded seller {seller.id} with demo products")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
