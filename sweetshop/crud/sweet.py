# sweetshop/crud/sweet.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy import update as sa_update
from sqlalchemy.orm import Session

from sweetshop.models.sweet import Sweet
from sweetshop.schemas.sweet import MAX_QUANTITY, SweetCreate, SweetPatch

logger = logging.getLogger("sweetshop.crud.sweet")


class SweetNotFoundError(Exception):
    """Ridicată când ID-ul nu există."""

    def __init__(self, sweet_id: int):
        super().__init__("Sweet not found")
        self.sweet_id = sweet_id


class InsufficientStockError(Exception):
    """Ridicată când cantitatea cerută depășește stocul curent."""

    def __init__(self, sweet_id: int, requested: int):
        super().__init__("Not enough items in stock")
        self.sweet_id = sweet_id
        self.requested = requested


class StockLimitError(Exception):
    """Ridicată când restock-ul ar depăși capacitatea coloanei `quantity`."""

    def __init__(self, sweet_id: int, requested: int):
        super().__init__(f"Stock cannot exceed {MAX_QUANTITY} items")
        self.sweet_id = sweet_id
        self.requested = requested


def _escape_like(value: str) -> str:
    # %, _ și \ se potrivesc literal
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _exists(db: Session, sweet_id: int) -> bool:
    return db.scalar(select(Sweet.id).where(Sweet.id == sweet_id)) is not None


def _positive_qty(quantity: int) -> int:
    qty = int(quantity)
    if qty <= 0:
        raise ValueError("quantity must be a positive integer")
    return qty


# -------------------------- Reads / listing --------------------------

def list_sweets(
    db: Session,
    *,
    search: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
) -> List[Sweet]:
    """
    Listează produsele care satisfac TOATE filtrele date, sortate după nume.

    Filtre:
      - search: substring case-insensitive în name (lower(name) LIKE).
      - category: potrivire exactă.
      - min_price/max_price: interval inclusiv.
    """
    conditions = []

    if search:
        conditions.append(
            func.lower(Sweet.name).like(f"%{_escape_like(search.lower())}%", escape="\\")
        )

    if category:
        conditions.append(Sweet.category == category)

    if min_price is not None:
        conditions.append(Sweet.price >= min_price)

    if max_price is not None:
        conditions.append(Sweet.price <= max_price)

    # tiebreaker pe id pentru ordine stabilă
    stmt = select(Sweet).where(*conditions).order_by(Sweet.name.asc(), Sweet.id.asc())
    return list(db.execute(stmt).scalars().all())


def get(db: Session, sweet_id: int) -> Optional[Sweet]:
    """Returnează produsul după ID (sau None)."""
    return db.get(Sweet, sweet_id)


def get_or_raise(db: Session, sweet_id: int) -> Sweet:
    obj = get(db, sweet_id)
    if obj is None:
        raise SweetNotFoundError(sweet_id)
    return obj


def _reload(db: Session, sweet_id: int) -> Sweet:
    # populate_existing: suprascrie starea din identity map după UPDATE-uri Core
    obj = db.get(Sweet, sweet_id, populate_existing=True)
    if obj is None:
        raise SweetNotFoundError(sweet_id)
    return obj


# -------------------------- Mutations --------------------------

def create(db: Session, data: SweetCreate) -> Sweet:
    obj = Sweet(
        name=data.name,
        category=data.category,
        price=data.price,
        quantity=data.quantity,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    logger.info("Created sweet id=%s name=%r qty=%s", obj.id, obj.name, obj.quantity)
    return obj


def update(db: Session, sweet_id: int, patch: SweetPatch) -> Sweet:
    """
    Aplică doar câmpurile furnizate; restul rămân neschimbate.
    `updated_at` se reîmprospătează la fiecare update reușit.
    """
    obj = get_or_raise(db, sweet_id)
    for k, v in patch.changes().items():
        setattr(obj, k, v)
    obj.updated_at = func.now()
    db.commit()
    return _reload(db, sweet_id)


def delete_by_id(db: Session, sweet_id: int) -> bool:
    """Șterge produsul după ID. Returnează True dacă s-a șters ceva."""
    obj = get(db, sweet_id)
    if not obj:
        return False
    db.delete(obj)
    db.commit()
    logger.info("Deleted sweet id=%s", sweet_id)
    return True


# -------------------------- Stock --------------------------

def purchase(db: Session, sweet_id: int, quantity: int = 1) -> Sweet:
    """
    Scade stocul ATOMIC, într-un singur UPDATE condiționat:

        UPDATE sweets SET quantity = quantity - :q WHERE id = :id AND quantity >= :q

    Fără read-modify-write: cererile concurente pe același ID se serializează
    în DB, deci stocul nu devine negativ și nu se pierd decrementări.
    0 rânduri afectate → ID inexistent (404) sau stoc insuficient (400).
    """
    qty = _positive_qty(quantity)
    if qty > MAX_QUANTITY:
        # niciun stoc nu poate acoperi cererea (și nu încape în INTEGER)
        if not _exists(db, sweet_id):
            raise SweetNotFoundError(sweet_id)
        raise InsufficientStockError(sweet_id, qty)
    res = db.execute(
        sa_update(Sweet)
        .where(Sweet.id == sweet_id, Sweet.quantity >= qty)
        .values(quantity=Sweet.quantity - qty, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        exists = _exists(db, sweet_id)
        db.rollback()
        if not exists:
            raise SweetNotFoundError(sweet_id)
        logger.info("Purchase rejected: sweet id=%s requested=%s (insufficient stock)", sweet_id, qty)
        raise InsufficientStockError(sweet_id, qty)
    db.commit()
    obj = _reload(db, sweet_id)
    logger.info("Purchased %s x sweet id=%s, remaining=%s", qty, sweet_id, obj.quantity)
    return obj


def restock(db: Session, sweet_id: int, quantity: int) -> Sweet:
    """
    Crește stocul atomic (UPDATE ... SET quantity = quantity + :q), doar dacă
    rezultatul rămâne <= MAX_QUANTITY.
    """
    qty = _positive_qty(quantity)
    if qty > MAX_QUANTITY:
        if not _exists(db, sweet_id):
            raise SweetNotFoundError(sweet_id)
        raise StockLimitError(sweet_id, qty)
    res = db.execute(
        sa_update(Sweet)
        .where(Sweet.id == sweet_id, Sweet.quantity <= MAX_QUANTITY - qty)
        .values(quantity=Sweet.quantity + qty, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        exists = _exists(db, sweet_id)
        db.rollback()
        if not exists:
            raise SweetNotFoundError(sweet_id)
        logger.info("Restock rejected: sweet id=%s requested=%s (stock limit)", sweet_id, qty)
        raise StockLimitError(sweet_id, qty)
    db.commit()
    obj = _reload(db, sweet_id)
    logger.info("Restocked %s x sweet id=%s, now=%s", qty, sweet_id, obj.quantity)
    return obj
