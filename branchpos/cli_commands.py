"""
Flask CLI commands.

Commands:
- flask init-db: Create the database tables
- flask create-owner: Create a user together with their business and first branch
"""

import click
import re
from branchpos import database
from branchpos.models import AppUser, Business, Branch


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables that do not exist yet."""
        database.create_all()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('create-owner')
    @click.option('--email', prompt=True, help='Owner email address')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Owner password')
    @click.option('--business', 'business_name', prompt=True, help='Business name')
    @click.option('--branch', 'branch_name', default='Main', show_default=True, help='First branch name')
    def create_owner(email, password, business_name, branch_name):
        """Create a business owner account with a business and one branch."""
        db_session = database.get_session()
        email = email.strip().lower()

        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, email):
            raise click.BadParameter('Invalid email. Use user@example.com', param_hint='--email')

        if len(password) < 6:
            raise click.BadParameter('Password must be at least 6 characters.', param_hint='--password')

        if db_session.query(AppUser).filter_by(email=email).first():
            raise click.ClickException(f'A user with email {email} already exists.')

        try:
            user = AppUser(email=email, active=True)
            user.set_password(password)
            db_session.add(user)
            db_session.flush()

            business = Business(owner_id=user.id, name=business_name.strip(), active=True)
            db_session.add(business)
            db_session.flush()

            branch = Branch(business_id=business.id, name=branch_name.strip(), is_active=True)
            db_session.add(branch)
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

        click.echo(click.style('Owner created.', fg='green', bold=True))
        click.echo(f'   User ID: {user.id}')
        click.echo(f'   Business ID: {business.id}')
        click.echo(f'   Branch ID: {branch.id}')
