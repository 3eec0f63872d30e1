"""Employee model."""
from sqlalchemy import Column, BigInteger, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from branchpos.database import Base, IdType


class Employee(Base):
    """Employee - staff member that can be recorded on an order."""

    __tablename__ = 'employee'

    id = Column(IdType, primary_key=True, autoincrement=True)
    business_id = Column(BigInteger, ForeignKey('business.id'), nullable=False, index=True)
    branch_id = Column(BigInteger, ForeignKey('branch.id'), nullable=True)
    name = Column(String(200), nullable=False)
    role = Column(String(50), nullable=False, default='cashier')
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    business = relationship('Business')
    branch = relationship('Branch')

    def __repr__(self):
        return f"<Employee(id={self.id}, name='{self.name}', role='{self.role}')>"
