"""Pintag CLI entry point with lazy command registration."""

from __future__ import annotations

import click

from pintag.logging_config import configure_logging
from pintag.settings import settings

_COMMANDS_REGISTERED = False


def _register_commands_once() -> None:
    global _COMMANDS_REGISTERED
    if _COMMANDS_REGISTERED:
        return

    from .commands import db, images, users

    cli.add_command(db.init_db_command, name="init-db")
    cli.add_command(users.create_user_command, name="create-user")
    cli.add_command(images.import_images_command, name="import-images")
    cli.add_command(images.list_images_command, name="list-images")

    _COMMANDS_REGISTERED = True


class _LazyCLIGroup(click.Group):
    def list_commands(self, ctx):
        _register_commands_once()
        return super().list_commands(ctx)

    def get_command(self, ctx, cmd_name):
        _register_commands_once()
        return super().get_command(ctx, cmd_name)


@click.group(cls=_LazyCLIGroup)
@click.option('--verbose', is_flag=True, default=False, help='Enable debug logging')
def cli(verbose: bool):
    """Pintag CLI for administration and bulk imports."""
    configure_logging(verbose or settings.debug)


if __name__ == "__main__":
    cli()
