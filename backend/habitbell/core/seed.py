import logging
import uuid
from datetime import datetime

from sqlalchemy.orm import Session

from ..models import Category
from .constants import SEED_CATEGORY_NAMES

logger = logging.getLogger(__name__)


def seed_initial_data(db: Session) -> None:
    """Seed the default categories if there are none yet."""
    if db.query(Category).count() > 0:
        return

    now = datetime.utcnow()
    for name in SEED_CATEGORY_NAMES:
        db.add(Category(id=f"cat_{uuid.uuid4().hex[:12]}", name=name, created_at=now))

    db.commit()
    logger.info("seeded %d default categories", len(SEED_CATEGORY_NAMES))
