# sweetshop/routers/sweet.py
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from sweetshop.crud import sweet as crud
from sweetshop.database import get_db
from sweetshop.routers.deps import AdminUser, CurrentUser, SweetId
from sweetshop.schemas.sweet import (
    MessageResponse,
    PurchaseRequest,
    RestockRequest,
    SweetCreate,
    SweetPatch,
    SweetRead,
)

router = APIRouter(prefix="/sweets", tags=["sweets"])


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sweet not found")


@router.get(
    "",
    response_model=List[SweetRead],
    summary="List all sweets (ordered by name)",
)
def list_sweets(response: Response, _user: CurrentUser, db: Session = Depends(get_db)):
    items = crud.list_sweets(db)
    response.headers["X-Total-Count"] = str(len(items))
    return items


# IMPORTANT: /search trebuie declarat înaintea /{sweet_id}
@router.get(
    "/search",
    response_model=List[SweetRead],
    summary="Search sweets by name, category and price range",
)
def search_sweets(
    response: Response,
    _user: CurrentUser,
    search: Optional[str] = Query(
        default=None,
        max_length=255,
        description="Substring (case-insensitive) to match in sweet name",
    ),
    category: Optional[str] = Query(default=None, max_length=255, description="Exact category"),
    min_price: Optional[Decimal] = Query(default=None, ge=0, alias="minPrice"),
    max_price: Optional[Decimal] = Query(default=None, ge=0, alias="maxPrice"),
    db: Session = Depends(get_db),
):
    """
    Returnează produsele care satisfac toate filtrele date, sortate după nume.
    - `search`: substring case-insensitive în `name`
    - `category`: potrivire exactă
    - `minPrice`, `maxPrice`: interval de preț (inclusiv)
    """
    if min_price is not None and max_price is not None and min_price > max_price:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="minPrice cannot be greater than maxPrice.",
        )
    items = crud.list_sweets(
        db,
        search=(search or "").strip() or None,
        category=(category or "").strip() or None,
        min_price=min_price,
        max_price=max_price,
    )
    response.headers["X-Total-Count"] = str(len(items))
    return items


@router.get(
    "/{sweet_id}",
    response_model=SweetRead,
    summary="Get a sweet by id",
)
def get_sweet(sweet_id: SweetId, _user: CurrentUser, db: Session = Depends(get_db)):
    obj = crud.get(db, sweet_id)
    if not obj:
        raise _not_found()
    return obj


@router.post(
    "",
    response_model=SweetRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a sweet (admin)",
)
def create_sweet(payload: SweetCreate, _admin: AdminUser, db: Session = Depends(get_db)):
    return crud.create(db, payload)


@router.put(
    "/{sweet_id}",
    response_model=SweetRead,
    summary="Partially update a sweet (admin)",
)
def update_sweet(sweet_id: SweetId, payload: SweetPatch, _admin: AdminUser, db: Session = Depends(get_db)):
    try:
        return crud.update(db, sweet_id, payload)
    except crud.SweetNotFoundError:
        raise _not_found()


@router.delete(
    "/{sweet_id}",
    response_model=MessageResponse,
    summary="Delete a sweet (admin)",
)
def delete_sweet(sweet_id: SweetId, _admin: AdminUser, db: Session = Depends(get_db)):
    if not crud.delete_by_id(db, sweet_id):
        raise _not_found()
    return MessageResponse(message="Sweet deleted successfully")


# ---------- Stock ----------

@router.post(
    "/{sweet_id}/purchase",
    response_model=SweetRead,
    summary="Purchase a sweet (decreases stock atomically)",
)
def purchase_sweet(
    sweet_id: SweetId,
    _user: CurrentUser,
    payload: Optional[PurchaseRequest] = None,
    db: Session = Depends(get_db),
):
    qty = payload.quantity if payload is not None else 1
    try:
        return crud.purchase(db, sweet_id, qty)
    except crud.SweetNotFoundError:
        raise _not_found()
    except crud.InsufficientStockError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post(
    "/{sweet_id}/restock",
    response_model=SweetRead,
    summary="Restock a sweet (admin)",
)
def restock_sweet(sweet_id: SweetId, payload: RestockRequest, _admin: AdminUser, db: Session = Depends(get_db)):
    try:
        return crud.restock(db, sweet_id, payload.quantity)
    except crud.SweetNotFoundError:
        raise _not_found()
    except crud.StockLimitError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
