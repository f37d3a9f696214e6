"""
Migration Resolution Script

Checks migration status, resolves failed migrations with ``alembic
stamp`` and applies pending ones. Unlike migrate_runtime.py it never
falls back to creating the schema from the models.

Run from project root: python scripts/resolve_migrations.py
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.config import setup_logging
from app.migration_runner import MigrationRunner


def main() -> int:
    setup_logging()
    return MigrationRunner().run(allow_schema_push=False)


if __name__ == "__main__":
    sys.exit(main())
