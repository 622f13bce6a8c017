"""
Cart API - FastAPI router for the session cart.
"""
from decimal import Decimal
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

from ..engine.errors import InvalidInput, LineNotFound
from ..engine.numbers import MAX_DECIMALS
from .state import cart, engine

router = APIRouter(prefix="/cart", tags=["cart"])


# Pydantic models for API
class LineCreate(BaseModel):
    """Request model for adding a line."""
    product: str
    quantity: Optional[int] = None  # None = cart form default
    markup_percent: Optional[Decimal] = None
    tax_percent: Optional[Decimal] = None
    annual: Optional[bool] = None
    platform: Optional[str] = None


class FieldUpdate(BaseModel):
    """Request model for updating one numeric field of a line."""
    field: str
    value: Any


class LineResponse(BaseModel):
    """Response model for a stored line (stored values, not priced ones)."""
    line_id: str
    product: str
    label: str
    quantity: int
    markup_percent: Decimal
    tax_percent: Decimal
    annual: Optional[bool]
    platform: Optional[str]


def _line_response(line) -> LineResponse:
    return LineResponse(
        line_id=line.line_id,
        product=line.product.value,
        label=line.product.label,
        quantity=line.quantity,
        markup_percent=line.markup_percent,
        tax_percent=line.tax_percent,
        annual=line.annual,
        platform=line.platform,
    )


def quote_payload(result, decimals: Optional[int] = 2) -> dict:
    """Flat, unit-labelled quote shape shared by the quote endpoints."""
    return jsonable_encoder({
        "lines": result.to_export_rows(decimals),
        "totals": result.totals.to_export_dict(result.base_currency, result.display_currency, decimals),
        "base_currency": result.base_currency,
        "display_currency": result.display_currency,
        "warnings": result.warnings,
        "trace": result.trace,
    })


# Endpoints

@router.get("", response_model=list[LineResponse])
async def list_lines():
    """List the lines currently in the cart."""
    return [_line_response(line) for line in cart.lines()]


@router.post("/lines", response_model=LineResponse)
async def add_line(line_data: LineCreate):
    """Add a product line to the cart."""
    try:
        line = cart.add(**line_data.model_dump())
    except InvalidInput as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _line_response(line)


@router.patch("/lines/{line_id}", response_model=LineResponse)
async def update_line(line_id: str, update: FieldUpdate):
    """Update quantity, markup_percent or tax_percent on a line."""
    try:
        line = cart.update_field(line_id, update.field, update.value)
    except LineNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidInput as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _line_response(line)


@router.delete("/lines/{line_id}")
async def remove_line(line_id: str):
    """Remove a line from the cart."""
    try:
        cart.remove(line_id)
        return {"success": True, "message": f"Line '{line_id}' removed"}
    except LineNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("")
async def clear_cart():
    """Remove every line."""
    cart.clear()
    return {"success": True, "message": "Cart cleared"}


@router.get("/quote")
async def quote_cart(discount_percent: Decimal = Decimal("0"), waive_fee: bool = False,
                     decimals: Optional[int] = Query(2, ge=0, le=MAX_DECIMALS)):
    """Price the cart as it stands right now."""
    try:
        result = engine.quote_cart(cart, discount_percent=discount_percent, waive_fee=waive_fee)
    except InvalidInput as e:
        raise HTTPException(status_code=422, detail=str(e))
    return quote_payload(result, decimals)
