import logging
from decimal import Decimal
from typing import Annotated, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from quote_tool import __version__
from quote_tool.engine.errors import ConfigurationError, ConversionUnavailable, InvalidInput
from quote_tool.engine.numbers import MAX_DECIMALS
from quote_tool.services.cart_store import CartStore
from quote_tool.api.cart_api import LineCreate, quote_payload, router as cart_router
from quote_tool.api.state import engine

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Quote Tool API",
    description="Resale quotation engine for tiered software licenses",
    version=__version__,
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include cart management API
app.include_router(cart_router)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("Configuration error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": f"Configuration error: {exc}"})


@app.exception_handler(ConversionUnavailable)
async def conversion_error_handler(request: Request, exc: ConversionUnavailable):
    logger.error("Exchange rate unavailable on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": f"Exchange rate unavailable: {exc}"})


class QuoteBody(BaseModel):
    lines: List[LineCreate] = []
    discount_percent: Decimal = Decimal("0")
    waive_fee: bool = False
    decimals: Optional[Annotated[int, Field(ge=0, le=MAX_DECIMALS)]] = 2


@app.get("/")
async def root():
    return {"status": "online", "message": "Quote Tool API Active"}


@app.post("/quote")
async def calculate_quote(body: QuoteBody):
    """Price a set of lines without touching the session cart."""
    scratch = CartStore.from_settings(engine.settings)
    try:
        for line in body.lines:
            scratch.add(**line.model_dump())
        result = engine.quote_cart(scratch, discount_percent=body.discount_percent, waive_fee=body.waive_fee)
    except InvalidInput as e:
        raise HTTPException(status_code=422, detail=str(e))
    return quote_payload(result, body.decimals)


@app.get("/products")
async def get_products():
    return engine.list_products()


@app.get("/rate-table")
async def get_rate_table():
    return jsonable_encoder(engine.rate_table.to_records())


@app.get("/system/status")
async def get_status():
    config = engine.config
    return jsonable_encoder({
        "engine_active": True,
        "products": len(engine.rate_table.products),
        "tax_inclusive_rates": engine.rate_table.tax_inclusive,
        "exchange_rate": config.exchange_rate,
        "base_currency": config.base_currency,
        "display_currency": config.display_currency,
        "min_markup_percent": config.min_markup_percent,
        "fee_percent": config.fee_percent,
        "fee_waivable": config.fee_waivable,
        "tax_order": config.tax_order.value,
        "fee_base": config.fee_base.value,
        "billing_period": config.billing_period.value,
    })
