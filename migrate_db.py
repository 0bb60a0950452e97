#!/usr/bin/env python
"""
Database operations for the Job Board service

    python migrate_db.py                  apply migrations (same as upgrade)
    python migrate_db.py upgrade [rev]    apply migrations up to rev (default head)
    python migrate_db.py downgrade [rev]  roll back to rev (default one step)
    python migrate_db.py current          show applied and latest revision
    python migrate_db.py sweep            expire overdue postings once

`sweep` is meant for deployments that run with ENABLE_SCHEDULER=false and
drive expiration from cron instead.
"""
import sys
from pathlib import Path

ROOT = Path(__file__).parent
sys.path.insert(0, str(ROOT / "src"))

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory


def alembic_config() -> Config:
    return Config(str(ROOT / "alembic.ini"))


def upgrade(revision: str = "head"):
    print(f"Upgrading job board schema to {revision}...")
    command.upgrade(alembic_config(), revision)
    print("Schema is up to date")


def downgrade(revision: str = "-1"):
    print(f"Downgrading job board schema to {revision}...")
    command.downgrade(alembic_config(), revision)
    print("Downgrade complete")


def current():
    from job_board.db.engine import engine

    head = ScriptDirectory.from_config(alembic_config()).get_current_head()
    with engine.connect() as connection:
        applied = MigrationContext.configure(connection).get_current_revision()

    print(f"Applied revision: {applied or 'none (run upgrade first)'}")
    print(f"Latest revision:  {head}")
    if applied != head:
        print("Schema is behind; run: python migrate_db.py upgrade")


def sweep():
    from job_board.config import config
    from job_board.db.engine import SessionLocal
    from job_board.services.payment_gateway import get_payment_gateway
    from job_board.services.scheduled_jobs import run_expiration_sweep

    try:
        gateway = get_payment_gateway(config.PAYMENT_PROVIDER, config)
    except ValueError as e:
        print(f"Payment gateway not configured, stale payments left as-is: {e}")
        gateway = None

    db = SessionLocal()
    try:
        result = run_expiration_sweep(db, gateway=gateway)
    finally:
        db.close()
    print(
        f"Expired {result['postings_expired']} posting(s), "
        f"voided {result['transactions_voided']} stale payment(s)"
    )


COMMANDS = {
    "upgrade": upgrade,
    "downgrade": downgrade,
    "current": current,
    "sweep": sweep,
}


if __name__ == "__main__":
    args = sys.argv[1:] or ["upgrade"]
    handler = COMMANDS.get(args[0])
    if handler is None:
        print(__doc__)
        sys.exit(2)
    handler(*args[1:2])
