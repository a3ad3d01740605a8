from __future__ import annotations

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# limitele coloanelor: INTEGER (32 biți) și NUMERIC(10,2)
MAX_QUANTITY = 2_147_483_647
MAX_PRICE = Decimal("99999999.99")


def _quantize_price(v: Decimal) -> Decimal:
    # Aliniază la NUMERIC(10,2) și evită erori de reprezentare
    return v.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _strip_nonempty(v: str, field: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{field} must not be empty")
    return v


class SweetBase(BaseModel):
    """Câmpuri comune pentru un produs; folosit la create/read."""
    name: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(..., ge=0, le=MAX_PRICE, allow_inf_nan=False)
    quantity: int = Field(..., ge=0, le=MAX_QUANTITY)

    # --- Validators ---
    @field_validator("name")
    @classmethod
    def _name_strip_nonempty(cls, v: str) -> str:
        return _strip_nonempty(v, "name")

    @field_validator("category")
    @classmethod
    def _category_strip_nonempty(cls, v: str) -> str:
        return _strip_nonempty(v, "category")

    @field_validator("price")
    @classmethod
    def _price_quantize(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("price must be >= 0")
        return _quantize_price(v)

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"name": "Gulab Jamun", "category": "Traditional", "price": "50.00", "quantity": 100}
            ]
        }
    )


class SweetCreate(SweetBase):
    """Payload pentru creare produs (toate câmpurile obligatorii)."""
    pass


class SweetPatch(BaseModel):
    """
    Payload pentru update parțial; toate câmpurile sunt opționale.
    `null` contează ca „nespecificat”. Trebuie trimis cel puțin un câmp.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[Decimal] = Field(None, ge=0, le=MAX_PRICE, allow_inf_nan=False)
    quantity: Optional[int] = Field(None, ge=0, le=MAX_QUANTITY)

    @field_validator("name")
    @classmethod
    def _name_strip_nonempty(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _strip_nonempty(v, "name")

    @field_validator("category")
    @classmethod
    def _category_strip_nonempty(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _strip_nonempty(v, "category")

    @field_validator("price")
    @classmethod
    def _price_quantize(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is None:
            return v
        if v < 0:
            raise ValueError("price must be >= 0")
        return _quantize_price(v)

    @model_validator(mode="after")
    def _at_least_one_field(self) -> "SweetPatch":
        if not self.changes():
            raise ValueError("No fields to update")
        return self

    def changes(self) -> dict:
        """Doar câmpurile efectiv furnizate (fără None)."""
        return self.model_dump(exclude_none=True)


class SweetRead(SweetBase):
    """Răspuns pentru produs."""
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PurchaseRequest(BaseModel):
    quantity: int = Field(1, gt=0, le=MAX_QUANTITY, description="Câte bucăți se cumpără (implicit 1)")


class RestockRequest(BaseModel):
    quantity: int = Field(..., gt=0, le=MAX_QUANTITY, description="Câte bucăți se adaugă în stoc")


class MessageResponse(BaseModel):
    message: str
