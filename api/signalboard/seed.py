from __future__ import annotations

import logging
import uuid

from . import models
from .db import SessionLocal, unit_of_work
from .models import AccountStatus, Role
from .settings import BOOTSTRAP_ADMIN_ID

logger = logging.getLogger(__name__)


def ensure_seed_data() -> None:
    """
    Make sure the bootstrap admin exists.

    The first admin cannot be invited by anyone, so its profile is created here
    from BOOTSTRAP_ADMIN_ID (the identity provider's subject). Safe to run on
    every startup.
    """
    if not BOOTSTRAP_ADMIN_ID:
        logger.info("ensure_seed_data: BOOTSTRAP_ADMIN_ID not set, nothing to seed.")
        return

    try:
        admin_id = uuid.UUID(BOOTSTRAP_ADMIN_ID)
    except ValueError:
        logger.error(f"ensure_seed_data: BOOTSTRAP_ADMIN_ID is not a UUID: {BOOTSTRAP_ADMIN_ID!r}")
        raise

    db = SessionLocal()
    try:
        with unit_of_work(db, "ensure_seed_data"):
            admin = db.get(models.Profile, admin_id)
            if admin is None:
                db.add(
                    models.Profile(
                        id=admin_id,
                        account_status=AccountStatus.APPROVED.value,
                        role=Role.ADMIN.value,
                        created_at=models.utcnow(),
                    )
                )
                logger.info(f"ensure_seed_data: Created bootstrap admin {admin_id}")
            elif admin.role != Role.ADMIN.value or admin.account_status != AccountStatus.APPROVED.value:
                admin.role = Role.ADMIN.value
                admin.account_status = AccountStatus.APPROVED.value
                admin.updated_at = models.utcnow()
                logger.info(f"ensure_seed_data: Restored admin rights for {admin_id}")
            else:
                logger.info("ensure_seed_data: Bootstrap admin already present.")
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level="INFO")
    ensure_seed_data()
