"""
Runtime Migration Script

Brings the database to the latest revision before the API starts, with
automatic recovery from failed or partial migrations and a schema-push
fallback. Run from project root: python scripts/migrate_runtime.py

Exit code 0 when the database is ready, 1 otherwise.
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.config import setup_logging
from app.migration_runner import MigrationRunner


def main() -> int:
    setup_logging()
    return MigrationRunner().run(allow_schema_push=True)


if __name__ == "__main__":
    sys.exit(main())
