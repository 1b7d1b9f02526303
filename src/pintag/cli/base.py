"""Base command class for shared CLI setup/teardown."""

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from pintag.database import get_engine_kwargs
from pintag.settings import settings

# Register the account model alongside the metadata models.
import pintag.auth.models  # noqa: F401


class CliCommand:
    """Base class for all CLI commands with shared setup/teardown."""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.database_url
        self.engine = None
        self.Session = None
        self.db = None

    def setup_db(self):
        """Initialize database connection."""
        self.engine = create_engine(
            self.database_url,
            **get_engine_kwargs(self.database_url),
        )
        self.Session = sessionmaker(bind=self.engine)
        self.db = self.Session()

    def cleanup_db(self):
        """Close database connection."""
        if self.db:
            self.db.close()
        if self.engine:
            self.engine.dispose()

    def run(self):
        """Execute command - override in subclasses."""
        raise NotImplementedError

    def __enter__(self):
        """Context manager entry."""
        self.setup_db()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.cleanup_db()
