"""Authentication blueprint - sign-in, business selection and sign-out (JSON)."""
from typing import Tuple

from flask import Blueprint, g, jsonify, request, session, current_app, Response
from branchpos.database import get_session
from branchpos.exceptions import BusinessLogicError, NotFoundError, UnauthorizedError
from branchpos.middleware import start_pos_session, end_pos_session, require_login
from branchpos.models import AppUser, Business

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def _business_summary(business: Business) -> dict:
    return {'id': business.id, 'name': business.name}


def _owned_businesses(db_session, user_id: int):
    return db_session.query(Business).filter(
        Business.owner_id == user_id,
        Business.active == True  # noqa: E712
    ).order_by(Business.name).all()


@auth_bp.route('/login', methods=['POST'])
def login() -> Tuple[Response, int]:
    """Validate email + password and open a POS session."""
    db_session = get_session()
    payload = request.get_json(silent=True) or request.form.to_dict()

    email = (payload.get('email') or '').strip().lower()
    password = payload.get('password') or ''
    if not email or not password:
        raise BusinessLogicError('Email and password are required.')

    user = db_session.query(AppUser).filter_by(email=email).first()
    if not user or not user.active or not user.check_password(password):
        raise UnauthorizedError('Invalid email or password.', status_code=401)

    businesses = _owned_businesses(db_session, user.id)
    if not businesses:
        raise UnauthorizedError('Your account has no business yet.')

    wanted = payload.get('business_id')
    if wanted is None and len(businesses) == 1:
        wanted = businesses[0].id

    business = next((b for b in businesses if str(b.id) == str(wanted)), None)
    if business is None:
        # Signed in, but the user still has to pick a business
        end_pos_session()
        session['user_id'] = user.id
        return jsonify({
            'status': 'select_business',
            'businesses': [_business_summary(b) for b in businesses]
        }), 200

    start_pos_session(user, business)
    current_app.logger.info(f"[auth] user={user.id} signed in to business={business.id}")
    return jsonify({'status': 'ok', 'business': _business_summary(business)}), 200


@auth_bp.route('/select-business', methods=['POST'])
@require_login
def select_business() -> Tuple[Response, int]:
    db_session = get_session()
    payload = request.get_json(silent=True) or request.form.to_dict()
    business_id = payload.get('business_id')

    business = next(
        (b for b in _owned_businesses(db_session, g.user.id) if str(b.id) == str(business_id)),
        None
    )
    if business is None:
        raise NotFoundError('Business not found.')

    start_pos_session(g.user, business)
    return jsonify({'status': 'ok', 'business': _business_summary(business)}), 200


@auth_bp.route('/logout', methods=['POST'])
def logout() -> Tuple[Response, int]:
    """Close the POS session (open carts are discarded with it)."""
    end_pos_session()
    return jsonify({'status': 'ok'}), 200


@auth_bp.route('/me', methods=['GET'])
@require_login
def me() -> Tuple[Response, int]:
    pos = g.get('pos')
    return jsonify({
        'user': {'id': g.user.id, 'email': g.user.email, 'full_name': g.user.full_name},
        'business_id': pos.business_id if pos else None,
    }), 200
