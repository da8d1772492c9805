import uuid

from sqlalchemy import Column, String, Uuid
from storefront.data.database import Base


class SellerModel(Base):
    __tablename__ = "sellers"
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
