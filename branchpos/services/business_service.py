"""Business lookups used by the POS (business-scoped)."""
from typing import Optional

from branchpos.models import Business, Branch, Employee
from branchpos.exceptions import NotFoundError
from branchpos.services.receipt_service import BusinessProfile


def get_business_profile(session, business_id: int) -> BusinessProfile:
    business = session.query(Business).filter(Business.id == business_id).first()
    if not business:
        raise NotFoundError('Business not found.')
    return BusinessProfile.from_business(business)


def get_active_branch(session, business_id: int, branch_id: int) -> Branch:
    """Branch of this business that is open for sales."""
    branch = session.query(Branch).filter(
        Branch.id == branch_id,
        Branch.business_id == business_id,
        Branch.is_active == True  # noqa: E712
    ).first()
    if not branch:
        raise NotFoundError('Branch not found or inactive.')
    return branch


def get_active_employee(session, business_id: int, employee_id: int,
                        branch_id: Optional[int] = None) -> Employee:
    """Active staff member of this business, optionally limited to a branch."""
    query = session.query(Employee).filter(
        Employee.id == employee_id,
        Employee.business_id == business_id,
        Employee.is_active == True  # noqa: E712
    )
    employee = query.first()
    if not employee:
        raise NotFoundError('Staff member not found or inactive.')
    if branch_id is not None and employee.branch_id not in (None, branch_id):
        raise NotFoundError('Staff member does not work at this branch.')
    return employee
