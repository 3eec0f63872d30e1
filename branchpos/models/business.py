"""Business model - each business (tenant) using the platform."""
from sqlalchemy import Column, BigInteger, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from branchpos.database import Base, IdType


class Business(Base):
    """Business model - tenant root and the profile printed on receipts."""

    __tablename__ = 'business'

    id = Column(IdType, primary_key=True, autoincrement=True)
    owner_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    address = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    owner = relationship('AppUser', back_populates='businesses')
    branches = relationship('Branch', back_populates='business')

    def __repr__(self):
        return f"<Business(id={self.id}, name='{self.name}')>"
