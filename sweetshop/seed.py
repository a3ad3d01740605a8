from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from sweetshop.core.settings import settings
from sweetshop.crud import user as user_crud
from sweetshop.models.sweet import Sweet

logger = logging.getLogger("sweetshop.seed")

# (name, category, price, quantity)
SAMPLE_SWEETS: Tuple[Tuple[str, str, Decimal, int], ...] = (
    ("Gulab Jamun", "Traditional", Decimal("50"), 100),
    ("Rasgulla", "Traditional", Decimal("40"), 80),
    ("Chocolate Bar", "Modern", Decimal("30"), 50),
    ("Ladoo", "Traditional", Decimal("45"), 120),
)


def seed_sample_sweets(db: Session) -> int:
    """Inserează catalogul demo doar dacă tabelul e gol. Returnează câte rânduri a adăugat."""
    count = db.scalar(select(func.count(Sweet.id))) or 0
    if count:
        logger.info("Sweets already present (%s rows); skipping sample data", count)
        return 0
    for name, category, price, quantity in SAMPLE_SWEETS:
        db.add(Sweet(name=name, category=category, price=price, quantity=quantity))
    db.commit()
    logger.info("Sample sweets added (%s rows)", len(SAMPLE_SWEETS))
    return len(SAMPLE_SWEETS)


def seed_all(db: Session) -> Dict[str, int]:
    """Seed idempotent: cont admin + catalog demo."""
    _, created = user_crud.ensure_admin(
        db,
        username=settings.ADMIN_USERNAME,
        email=settings.ADMIN_EMAIL,
        password=settings.ADMIN_PASSWORD,
    )
    if created:
        logger.info("Default admin user created: username=%s", settings.ADMIN_USERNAME)
    else:
        logger.info("Admin user already exists")
    return {"admin_created": int(created), "sweets_added": seed_sample_sweets(db)}
