"""Branch model."""
from sqlalchemy import Column, BigInteger, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from branchpos.database import Base, IdType


class Branch(Base):
    """Branch - a physical location that scopes stock and sales."""

    __tablename__ = 'branch'

    id = Column(IdType, primary_key=True, autoincrement=True)
    business_id = Column(BigInteger, ForeignKey('business.id'), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    address = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    manager_name = Column(String(200), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    business = relationship('Business', back_populates='branches')

    def __repr__(self):
        return f"<Branch(id={self.id}, name='{self.name}')>"
