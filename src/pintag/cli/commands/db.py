"""Database setup command."""

import click

from pintag.cli.base import CliCommand
from pintag.database import init_db


@click.command(name='init-db')
def init_db_command():
    """Create all tables (development; production uses alembic)."""
    cmd = InitDbCommand()
    cmd.run()


class InitDbCommand(CliCommand):
    """Create every table on the configured database."""

    def run(self):
        self.setup_db()
        try:
            init_db(bind=self.engine)
            click.echo(f"✓ Tables created on {self.engine.url.render_as_string(hide_password=True)}")
        finally:
            self.cleanup_db()
