"""
Migration Runner

Brings a PostgreSQL database up to the latest Alembic revision before the
API starts, recovering from the states a half-finished deploy leaves
behind.

Flow:
    1. Validate DATABASE_URL (set, PostgreSQL)
    2. ``alembic current`` - connection errors abort immediately
    3. Failed/partial migrations are resolved with ``alembic stamp``
    4. ``alembic upgrade head``
    5. Dialect mismatch or unresolvable state: ``create_all`` + ``stamp head``
    6. Final status check

Exit codes: 0 on success, 1 on unresolved failure.

Usage:
    from app.migration_runner import MigrationRunner

    sys.exit(MigrationRunner().run())
"""

import logging
import os
import re
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import get_settings

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent

EXIT_OK = 0
EXIT_FAILURE = 1

CONNECTION_ERROR_MARKERS = (
    "could not connect",
    "connection refused",
    "can't reach",
    "could not translate host name",
)

FAILED_MIGRATION_MARKERS = (
    "already exists",
    "DuplicateTable",
    "DuplicateColumn",
    "DuplicateObject",
    "Can't locate revision",
)

DIALECT_MISMATCH_MARKERS = (
    "sqlite3.",
    "does not match",
    "No support for ALTER",
)

REVISION_PATTERNS = (
    re.compile(r"Can't locate revision identified by '([\w\-]+)'"),
    re.compile(r"Running upgrade [\w\-, ]*-> ([\w\-]+)"),
    re.compile(r"revision[:\s]+'?([0-9a-f]{12}|\d{4}[\w\-]*)'?", re.IGNORECASE),
)


# =============================================================================
# OUTPUT INSPECTION
# =============================================================================

def _contains(output: str, markers: tuple) -> bool:
    lowered = output.lower()
    return any(marker.lower() in lowered for marker in markers)


def is_connection_error(output: str) -> bool:
    return _contains(output, CONNECTION_ERROR_MARKERS)


def is_failed_migration(output: str) -> bool:
    return _contains(output, FAILED_MIGRATION_MARKERS)


def is_dialect_mismatch(output: str) -> bool:
    return _contains(output, DIALECT_MISMATCH_MARKERS)


def extract_revisions(output: str) -> List[str]:
    """Revision ids mentioned in Alembic output, first occurrence order."""
    revisions: List[str] = []
    for pattern in REVISION_PATTERNS:
        for match in pattern.finditer(output):
            revision = match.group(1)
            if revision not in revisions:
                revisions.append(revision)
    return revisions


def is_postgres_url(url: str) -> bool:
    return url.startswith(("postgresql", "postgres://"))


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class CommandResult:
    """Outcome of one Alembic CLI call."""
    returncode: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass
class MigrationStatus:
    """What ``alembic current`` reported."""
    output: str = ""
    connection_error: bool = False
    failed: bool = False
    failed_revisions: List[str] = field(default_factory=list)

    @classmethod
    def from_result(cls, result: CommandResult) -> "MigrationStatus":
        output = result.output
        failed = is_failed_migration(output)
        return cls(
            output=output,
            connection_error=is_connection_error(output),
            failed=failed or (not result.ok and not is_connection_error(output)),
            failed_revisions=extract_revisions(output) if failed else [],
        )


# =============================================================================
# RUNNER
# =============================================================================

class MigrationRunner:
    """
    Shells out to the Alembic CLI and string-matches its output.

    Args:
        database_url: Defaults to ``DATABASE_URL`` from settings
        config_path: Path to ``alembic.ini``
        runner: ``subprocess.run`` compatible callable
    """

    MAX_RECOVERY_ATTEMPTS = 2

    def __init__(
        self,
        database_url: Optional[str] = None,
        config_path: Optional[str] = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        self.database_url = database_url if database_url is not None else get_settings().database_url
        self.config_path = config_path or str(PROJECT_ROOT / "alembic.ini")
        self._runner = runner
        self.recovery_attempts = 0

    # -------------------------------------------------------------------------
    # Alembic CLI
    # -------------------------------------------------------------------------

    def alembic(self, *args: str) -> CommandResult:
        command = [sys.executable, "-m", "alembic", "-c", self.config_path, *args]
        logger.info(f"   $ alembic {' '.join(args)}")

        env = dict(os.environ, DATABASE_URL=self.database_url)
        try:
            completed = self._runner(
                command,
                capture_output=True,
                text=True,
                cwd=str(PROJECT_ROOT),
                env=env,
            )
        except OSError as e:
            logger.error(f"   ❌ Could not run alembic: {e}")
            return CommandResult(returncode=EXIT_FAILURE, output=str(e))

        output = "\n".join(part for part in (completed.stdout, completed.stderr) if part)
        for line in output.splitlines():
            if line.strip():
                logger.debug(f"     {line}")
        return CommandResult(returncode=completed.returncode, output=output)

    def validate_database_url(self) -> bool:
        if not self.database_url:
            logger.error("❌ DATABASE_URL environment variable is required for migrations")
            return False
        if not is_postgres_url(self.database_url):
            scheme = self.database_url.split("://", 1)[0]
            logger.error(f"❌ DATABASE_URL must be a PostgreSQL connection string (got {scheme}://)")
            return False
        return True

    def check_status(self) -> MigrationStatus:
        logger.info("📋 Checking migration status...")
        status = MigrationStatus.from_result(self.alembic("current"))
        if status.connection_error:
            logger.error("❌ Cannot reach the database")
        elif status.failed:
            logger.warning(f"⚠️ Failed migrations detected: {status.failed_revisions or 'unknown revision'}")
        else:
            logger.info("   ✅ No failed migrations detected")
        return status

    def resolve(self, revision: str) -> bool:
        """
        Mark ``revision`` as applied; if Alembic refuses, roll the marker
        back to its parent, then to base.
        """
        logger.info(f"🔧 Resolving revision {revision}")
        for target in ([revision], [f"{revision}^"], ["--purge", "base"]):
            if self.alembic("stamp", *target).ok:
                logger.info(f"   ✅ Stamped {' '.join(target)}")
                return True
            logger.warning(f"   Stamp {' '.join(target)} failed")
        logger.error(f"   ❌ Could not resolve revision {revision}")
        return False

    def upgrade(self) -> CommandResult:
        logger.info("🗄️  Applying database migrations...")
        return self.alembic("upgrade", "head")

    def push_schema(self) -> bool:
        """Create tables straight from the models, then record them as head."""
        import app.models  # noqa: F401
        from app.database import Base

        logger.warning("⚠️ Falling back to schema push")
        engine = create_engine(self.database_url)
        try:
            Base.metadata.create_all(engine)
        except SQLAlchemyError as e:
            logger.error(f"   ❌ Schema push failed: {e}")
            return False
        finally:
            engine.dispose()

        if not self.alembic("stamp", "head").ok:
            logger.error("   ❌ Schema created but stamping head failed")
            return False
        logger.info("   ✅ Schema created and stamped at head")
        return True

    # -------------------------------------------------------------------------
    # Flow
    # -------------------------------------------------------------------------

    def _recover(self, status: MigrationStatus, allow_schema_push: bool) -> Optional[bool]:
        """
        One recovery round.

        Returns True when the database was brought to head by a schema
        push, False on unrecoverable failure, None to retry the upgrade.
        """
        if self.recovery_attempts >= self.MAX_RECOVERY_ATTEMPTS:
            logger.error("❌ Maximum recovery attempts reached")
            return False
        self.recovery_attempts += 1
        logger.info(f"   Recovery attempt {self.recovery_attempts}/{self.MAX_RECOVERY_ATTEMPTS}")

        if not status.failed_revisions:
            if allow_schema_push:
                return self.push_schema()
            logger.error("   ❌ Could not extract a revision from alembic output")
            return False

        for revision in status.failed_revisions:
            if not self.resolve(revision):
                if allow_schema_push:
                    return self.push_schema()
                return False
        return None

    def run(self, allow_schema_push: bool = True) -> int:
        """
        Run the full migration flow.

        Args:
            allow_schema_push: Fall back to ``create_all`` on dialect
                mismatch or unresolvable state

        Returns:
            Process exit code
        """
        logger.info("=" * 60)
        logger.info("🗄️  Running database migrations")
        logger.info("=" * 60)

        if not self.validate_database_url():
            return EXIT_FAILURE

        status = self.check_status()
        if status.connection_error:
            return EXIT_FAILURE

        while True:
            if status.failed:
                outcome = self._recover(status, allow_schema_push)
                if outcome is False:
                    return EXIT_FAILURE
                if outcome is True:
                    break

            result = self.upgrade()
            if result.ok:
                logger.info("✅ Database migrations completed successfully")
                break
            if is_connection_error(result.output):
                logger.error("❌ Lost the database connection during upgrade")
                return EXIT_FAILURE
            if is_dialect_mismatch(result.output):
                if allow_schema_push and self.push_schema():
                    break
                return EXIT_FAILURE
            if not is_failed_migration(result.output):
                logger.error(f"❌ Migration failed:\n{result.output}")
                return EXIT_FAILURE

            status = MigrationStatus.from_result(result)

        final = self.check_status()
        if final.connection_error or final.failed:
            logger.error("❌ Database is not at a clean revision after migration")
            return EXIT_FAILURE

        logger.info("✅ Database is up to date")
        return EXIT_OK
