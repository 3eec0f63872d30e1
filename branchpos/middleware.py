"""Middleware for authentication and business context."""
from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask import session, g, current_app
from branchpos.database import get_session
from branchpos.exceptions import UnauthorizedError
from branchpos.models import AppUser, Business


@dataclass(frozen=True)
class PosContext:
    """
    Who is selling for which business during this request.

    Created from the signed session at sign-in, dropped at sign-out, and
    passed explicitly to services instead of being read from globals.
    """
    user_id: int
    business_id: int


def start_pos_session(user: AppUser, business: Business) -> PosContext:
    """Sign-in: bind the session cookie to a user and one of their businesses."""
    session.clear()
    session['user_id'] = user.id
    session['business_id'] = business.id
    session.permanent = True
    return PosContext(user_id=user.id, business_id=business.id)


def end_pos_session() -> None:
    """Sign-out: forget the user, the business and any open carts."""
    session.clear()


def load_user_and_business():
    """
    Load current user and business context into g.

    Called before each request. Sets g.user and g.pos (a PosContext) when the
    session belongs to an active user who owns the selected active business.
    """
    g.user = None
    g.pos = None

    user_id = session.get('user_id')
    if not user_id:
        return

    db_session = get_session()
    user = db_session.query(AppUser).filter_by(id=user_id, active=True).first()
    if not user:
        current_app.logger.info(f"Dropping session of inactive or missing user {user_id}")
        session.clear()
        return
    g.user = user

    business_id = session.get('business_id')
    if business_id:
        business = db_session.query(Business).filter_by(
            id=business_id, owner_id=user.id, active=True
        ).first()
        if business:
            g.pos = PosContext(user_id=user.id, business_id=business.id)
        else:
            # User lost access to this business, clear it
            session.pop('business_id', None)


def current_context() -> Optional[PosContext]:
    return g.get('pos')


def require_login(f):
    """Decorator: Require user to be signed in."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            raise UnauthorizedError('Sign in required.', status_code=401)
        return f(*args, **kwargs)
    return decorated_function


def require_business(f):
    """
    Decorator: Require a business to be selected.

    Must be used AFTER require_login.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('pos') is None:
            raise UnauthorizedError('Select a business first.')
        return f(*args, **kwargs)
    return decorated_function
