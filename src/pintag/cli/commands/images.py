"""Image import and listing commands."""

import logging
from pathlib import Path
from typing import Optional

import click

from pintag.cli.base import CliCommand
from pintag.image import ImageValidationError
from pintag.ingest import UploadTooLarge, build_processor, ingest_image
from pintag.metadata import Image
from pintag.settings import settings
from pintag.storage import StorageError, StorageProvider, create_storage_provider

logger = logging.getLogger(__name__)


@click.command(name='import-images')
@click.argument('directory', type=click.Path(exists=True, file_okay=False))
@click.option('--recursive/--no-recursive', default=False, help='Process subdirectories')
@click.option('--alt-from-filename', is_flag=True, default=False, help='Use the file stem as alt text')
def import_images_command(directory: str, recursive: bool, alt_from_filename: bool):
    """Import images from a local directory into the catalog."""
    cmd = ImportImagesCommand(directory, recursive=recursive, alt_from_filename=alt_from_filename)
    cmd.run()


@click.command(name='list-images')
@click.option('--limit', default=20, type=int, help='Maximum number of images to show')
def list_images_command(limit: int):
    """List the most recent images."""
    cmd = ListImagesCommand(limit=limit)
    cmd.run()


def _alt_from_stem(path: Path) -> str:
    return path.stem.replace("_", " ").replace("-", " ").strip()


class ImportImagesCommand(CliCommand):
    """Bulk import through the same ingest path as the upload route."""

    def __init__(
        self,
        directory: str,
        recursive: bool = False,
        alt_from_filename: bool = False,
        storage: Optional[StorageProvider] = None,
        database_url: Optional[str] = None,
    ):
        super().__init__(database_url)
        self.directory = Path(directory)
        self.recursive = recursive
        self.alt_from_filename = alt_from_filename
        self.storage = storage
        self.imported = 0
        self.skipped = 0
        self.failed = 0

    def _candidate_files(self):
        pattern = "**/*" if self.recursive else "*"
        processor = build_processor()
        for path in sorted(self.directory.glob(pattern)):
            if path.is_file() and processor.is_supported(path.name):
                yield path

    def run(self):
        """Execute import command."""
        self.setup_db()
        try:
            storage = self.storage or create_storage_provider(settings)
            processor = build_processor()
            for path in self._candidate_files():
                try:
                    image = ingest_image(
                        self.db,
                        storage,
                        data=path.read_bytes(),
                        filename=path.name,
                        alt=_alt_from_stem(path) if self.alt_from_filename else None,
                        processor=processor,
                    )
                except (ImageValidationError, UploadTooLarge) as e:
                    self.skipped += 1
                    click.echo(f"  - skipped {path.name}: {e}")
                    continue
                except StorageError as e:
                    self.failed += 1
                    logger.error("Storage failure importing %s: %s", path, e)
                    click.echo(f"  ✗ failed {path.name}: {e}", err=True)
                    continue
                self.imported += 1
                click.echo(f"  + {path.name} -> {image.media_id}")

            click.echo(
                f"\n✓ Imported {self.imported} · skipped {self.skipped} · failed {self.failed}"
            )
        finally:
            self.cleanup_db()


class ListImagesCommand(CliCommand):
    """Print recent images."""

    def __init__(self, limit: int = 20, database_url: Optional[str] = None):
        super().__init__(database_url)
        self.limit = limit

    def run(self):
        self.setup_db()
        try:
            images = (
                self.db.query(Image)
                .order_by(Image.created_at.desc(), Image.id.desc())
                .limit(max(1, self.limit))
                .all()
            )
            if not images:
                click.echo("No images found")
                return
            for image in images:
                kind = "upload" if image.is_user_upload else "catalog"
                click.echo(
                    f"{image.id:>6}  {image.media_id}  {image.width}x{image.height}  {kind:<7}  {image.filename}"
                )
        finally:
            self.cleanup_db()
