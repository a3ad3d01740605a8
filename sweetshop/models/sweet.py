from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, Numeric, String, func, text
from sqlalchemy.orm import Mapped, mapped_column

from sweetshop.database import Base


class Sweet(Base):
    """
    Produs din catalogul magazinului.

    Note:
    - `quantity` nu scade niciodată sub 0: CHECK la nivel DB + UPDATE condiționat în crud.
    - `price` e NOT NULL și >= 0 (CHECK).
    - Index funcțional pe lower(name) pentru căutarea case-insensitive.
    """
    __tablename__ = "sweets"
    __table_args__ = (
        Index("ix_sweets_price", "price"),
        Index("ix_sweets_category", "category"),
        Index("ix_sweets_name_lower", func.lower(text("name"))),
        CheckConstraint("price >= 0", name="price_nonnegative"),
        CheckConstraint("quantity >= 0", name="quantity_nonnegative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        # scurtează numele în repr pentru loguri mai curate
        name_preview = (self.name[:32] + "…") if self.name and len(self.name) > 33 else self.name
        return f"<Sweet id={self.id!r} name={name_preview!r} qty={self.quantity!r}>"
