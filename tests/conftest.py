import pytest
from decimal import Decimal
import os
import tempfile
import uuid

# Tests run against a throwaway SQLite file unless a database is provided (e.g. by Docker)
if 'DATABASE_URL' not in os.environ:
    _db_dir = tempfile.mkdtemp(prefix='branchpos-tests-')
    os.environ['DATABASE_URL'] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ.setdefault('CACHE_ENABLED', 'false')

from sqlalchemy.orm import Session

from branchpos import create_app
from branchpos import database
from branchpos.models import AppUser, Business, Branch, Employee, Product, Order, OrderLine


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.Config')
    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False
    app.config['POS_DEFAULT_TAX_PERCENT'] = '18'
    database.create_all()
    return app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """
    Database session for fixtures and assertions.

    Separate from the request-scoped session so objects created here keep
    their attributes after a request tears its own session down.
    """
    session = Session(bind=database.engine, expire_on_commit=False)
    yield session
    session.rollback()
    session.close()
    database.get_session().remove()

    with database.engine.begin() as conn:
        for table in reversed(database.Base.metadata.sorted_tables):
            conn.execute(table.delete())


def stock_of(session, product_id):
    """Current stock straight from the database."""
    return session.query(Product.stock_quantity).filter(Product.id == product_id).scalar()


def order_count(session, business_id):
    return session.query(Order).filter(Order.business_id == business_id).count()


@pytest.fixture(scope='function')
def owner(session):
    """Create a business owner."""
    suffix = str(uuid.uuid4())[:8]
    user = AppUser(
        email=f'owner-{suffix}@test.com',
        full_name='Owner One',
        active=True
    )
    user.set_password('password123')
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def business(session, owner):
    """Create a business with a receipt profile."""
    business = Business(
        owner_id=owner.id,
        name='Corner Electronics',
        address='12 Market Road',
        phone='+91 98765 43210',
        email='shop@example.com',
        active=True
    )
    session.add(business)
    session.commit()
    return business


@pytest.fixture(scope='function')
def other_business(session):
    """A second business owned by someone else, for isolation tests."""
    suffix = str(uuid.uuid4())[:8]
    user = AppUser(email=f'other-{suffix}@test.com', active=True)
    user.set_password('password123')
    session.add(user)
    session.flush()

    business = Business(owner_id=user.id, name='Other Shop', active=True)
    session.add(business)
    session.commit()
    return business


@pytest.fixture(scope='function')
def branch(session, business):
    branch = Branch(business_id=business.id, name='Main Street', is_active=True)
    session.add(branch)
    session.commit()
    return branch


@pytest.fixture(scope='function')
def second_branch(session, business):
    branch = Branch(business_id=business.id, name='Airport', is_active=True)
    session.add(branch)
    session.commit()
    return branch


@pytest.fixture(scope='function')
def cashier(session, business, branch):
    employee = Employee(business_id=business.id, branch_id=branch.id, name='Asha', role='cashier', is_active=True)
    session.add(employee)
    session.commit()
    return employee


def make_product(session, business, name, price, stock, branch=None, category=None, sku=None, active=True):
    product = Product(
        business_id=business.id,
        branch_id=branch.id if branch else None,
        name=name,
        sku=sku,
        category=category,
        price=Decimal(str(price)),
        stock_quantity=stock,
        is_active=active
    )
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def laptop(session, business, branch):
    """Branch product: price 100, 5 in stock."""
    return make_product(session, business, 'Laptop Sleeve', 100, 5, branch=branch,
                        category='Accessories', sku='SLV-01')


@pytest.fixture(scope='function')
def tea(session, business):
    """Branch-independent product: price 50, 10 in stock."""
    return make_product(session, business, 'Green Tea Pack', 50, 10, category='Food', sku='TEA-10')


@pytest.fixture(scope='function')
def headphones(session, business, branch):
    """Branch product: price 200, 3 in stock."""
    return make_product(session, business, 'Headphones', 200, 3, branch=branch,
                        category='Electronics', sku='HP-200')


@pytest.fixture(scope='function')
def authenticated_client(client, owner, business):
    """Client signed in to the business."""
    with client.session_transaction() as sess:
        sess['user_id'] = owner.id
        sess['business_id'] = business.id
    return client
