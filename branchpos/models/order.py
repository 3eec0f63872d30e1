"""Order model."""
from sqlalchemy import Column, BigInteger, String, Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from branchpos.database import Base, IdType
import enum


class PaymentMethod(str, enum.Enum):
    """Payment methods accepted at the counter."""
    CASH = 'cash'
    CARD = 'card'
    MOBILE = 'mobile'

    @property
    def label(self):
        return {
            PaymentMethod.CASH: 'Cash',
            PaymentMethod.CARD: 'Card',
            PaymentMethod.MOBILE: 'Mobile payment',
        }[self]


def normalize_payment_method(value) -> PaymentMethod:
    """
    Map free-form input to a PaymentMethod.

    Accepts enum members, values in any case and the legacy 'upi' alias.
    Raises ValueError for anything else.
    """
    if isinstance(value, PaymentMethod):
        return value
    key = str(value or '').strip().lower()
    if key in ('upi', 'mobile_payment', 'mobile-payment'):
        key = PaymentMethod.MOBILE.value
    return PaymentMethod(key)


class Order(Base):
    """Order - immutable record of a completed sale."""

    __tablename__ = 'sale_order'
    __table_args__ = (
        UniqueConstraint('business_id', 'idempotency_key', name='uq_sale_order_business_idempotency_key'),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    business_id = Column(BigInteger, ForeignKey('business.id'), nullable=False, index=True)
    branch_id = Column(BigInteger, ForeignKey('branch.id'), nullable=False, index=True)
    employee_id = Column(BigInteger, ForeignKey('employee.id'), nullable=True)
    customer_name = Column(String(200), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    subtotal = Column(Numeric(12, 2), nullable=False)
    discount_percent = Column(Numeric(5, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    tax_percent = Column(Numeric(5, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(20), nullable=False, default=PaymentMethod.CASH.value)
    payment_status = Column(String(20), nullable=False, default='paid')

    # Idempotency key to prevent duplicate orders on double-submit (unique per business)
    idempotency_key = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    business = relationship('Business')
    branch = relationship('Branch')
    employee = relationship('Employee')
    lines = relationship('OrderLine', back_populates='order', cascade='all, delete-orphan',
                         order_by='OrderLine.id')

    def __repr__(self):
        return f"<Order(id={self.id}, total={self.total_amount}, method={self.payment_method})>"
