"""Account management commands."""

import click
from sqlalchemy import func

from pintag.auth.models import User
from pintag.auth.passwords import MAX_PASSWORD_BYTES, hash_password, password_too_long
from pintag.cli.base import CliCommand


@click.command(name='create-user')
@click.option('--email', required=True, help='Login email')
@click.option('--password', required=True, prompt=True, hide_input=True, confirmation_prompt=True, help='Login password')
@click.option('--display-name', required=True, help='Name shown next to tags and comments')
@click.option('--admin', is_flag=True, default=False, help='Grant the admin role')
def create_user_command(email: str, password: str, display_name: str, admin: bool):
    """Create a user or admin account."""
    cmd = CreateUserCommand(email=email, password=password, display_name=display_name, admin=admin)
    cmd.run()


class CreateUserCommand(CliCommand):
    """Insert one account."""

    def __init__(self, email: str, password: str, display_name: str, admin: bool = False, database_url=None):
        super().__init__(database_url)
        self.email = email.strip().lower()
        self.password = password
        self.display_name = display_name.strip()
        self.role = "admin" if admin else "user"

    def run(self):
        if len(self.password) < 8:
            raise click.ClickException("Password must be at least 8 characters")
        if password_too_long(self.password):
            raise click.ClickException(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
        if not self.display_name:
            raise click.ClickException("Display name cannot be empty")

        self.setup_db()
        try:
            if self.db.query(User).filter(func.lower(User.email) == self.email).first():
                raise click.ClickException(f"User {self.email} already exists")

            user = User(
                email=self.email,
                display_name=self.display_name,
                password_hash=hash_password(self.password),
                role=self.role,
                is_active=True,
            )
            self.db.add(user)
            self.db.commit()
            click.echo(f"✓ Created {self.role} {user.email} (id={user.id})")
        finally:
            self.cleanup_db()
