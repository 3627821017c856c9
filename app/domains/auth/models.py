from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.shared.database.connection import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    wallet_address = Column(String(128), unique=True, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # 1:1 relationship with CreditAccount, created together with the user
    credit_account = relationship("CreditAccount", back_populates="user", uselist=False)
    art = relationship("ArtPiece", back_populates="owner")
