from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Optional

from storefront_pricing import __version__
from storefront_pricing.config.logging_config import configure_logging
from storefront_pricing.engine import PriceContext, PriceItem, PricingError, PricingService
from storefront_pricing.api.rules_api import router as rules_router
from storefront_pricing.api.state import get_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield


app = FastAPI(
    title="Storefront Pricing API",
    description="Layered price resolution for products, variants and baskets",
    version=__version__,
    lifespan=lifespan,
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include rules API
app.include_router(rules_router)


class ContextModel(BaseModel):
    variant_id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_group_ids: List[str] = Field(default_factory=list)
    quantity: int = Field(default=1, ge=1)
    date: Optional[datetime] = None
    cart_total: float = 0.0
    product_ids: List[str] = Field(default_factory=list)
    additional_data: Dict[str, Any] = Field(default_factory=dict)
    exclude_rule_ids: List[str] = Field(default_factory=list)

    def to_context(self) -> PriceContext:
        return PriceContext(**self.model_dump(exclude_none=True))


class CalcRequest(BaseModel):
    product_id: str
    context: ContextModel = Field(default_factory=ContextModel)


class BatchItem(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=1)


class BatchRequest(BaseModel):
    items: List[BatchItem]
    context: ContextModel = Field(default_factory=ContextModel)


@app.get("/")
async def root():
    return {"status": "online", "message": "Storefront Pricing API Active"}


@app.post("/pricing/calculate")
async def calculate_price(req: CalcRequest, service: PricingService = Depends(get_service)):
    try:
        result = service.calculate_price(req.product_id, req.context.to_context())
    except PricingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return jsonable_encoder(result)


@app.post("/pricing/calculate-batch")
async def calculate_prices(req: BatchRequest, service: PricingService = Depends(get_service)):
    items = [PriceItem(i.product_id, i.variant_id, i.quantity) for i in req.items]
    try:
        results = service.calculate_prices(items, req.context.to_context())
    except PricingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return jsonable_encoder(results)


@app.get("/system/status")
async def get_status(service: PricingService = Depends(get_service)):
    return {
        "engine_active": True,
        "version": __version__,
        "products_count": len(service.catalog),
        "rules_count": len(service.pricing_rules.list_rules()),
        "active_rules_count": len(service.pricing_rules.list_rules(include_inactive=False)),
    }
