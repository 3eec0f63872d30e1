"""
Integration tests for the Flask CLI commands.
"""

from branchpos.models import AppUser, Business, Branch


def test_init_db_is_repeatable(app):
    result = app.test_cli_runner().invoke(args=['init-db'])
    assert result.exit_code == 0
    assert 'Database tables created.' in result.output


def test_create_owner(app, session):
    result = app.test_cli_runner().invoke(args=[
        'create-owner', '--email', 'New@Shop.com', '--password', 'secret1',
        '--business', 'New Shop', '--branch', 'Downtown'
    ])

    assert result.exit_code == 0, result.output
    user = session.query(AppUser).filter_by(email='new@shop.com').one()
    assert user.check_password('secret1')
    business = session.query(Business).filter_by(owner_id=user.id).one()
    assert business.name == 'New Shop'
    assert [b.name for b in session.query(Branch).filter_by(business_id=business.id)] == ['Downtown']


def test_create_owner_rejects_short_password(app, session):
    result = app.test_cli_runner().invoke(args=[
        'create-owner', '--email', 'short@shop.com', '--password', '123', '--business', 'X'
    ])

    assert result.exit_code != 0
    assert 'at least 6 characters' in result.output
    assert session.query(AppUser).filter_by(email='short@shop.com').count() == 0


def test_create_owner_rejects_existing_email(app, owner):
    result = app.test_cli_runner().invoke(args=[
        'create-owner', '--email', owner.email, '--password', 'secret1', '--business', 'Dup'
    ])

    assert result.exit_code == 1
    assert 'already exists' in result.output
