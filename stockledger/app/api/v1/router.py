from fastapi import APIRouter

from stockledger.app.api.v1.endpoints.health import router as health_router
from stockledger.app.api.v1.endpoints.products import router as products_router
from stockledger.app.api.v1.endpoints.transfers import router as transfers_router
from stockledger.app.api.v1.endpoints.invoices import router as invoices_router
from stockledger.app.api.v1.endpoints.stock import router as stock_router
from stockledger.app.api.v1.endpoints.alerts import router as alerts_router
from stockledger.app.api.v1.endpoints.technicians import router as technicians_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(products_router, tags=["products"])
router.include_router(transfers_router, tags=["transfers"])
router.include_router(invoices_router, tags=["invoices"])
router.include_router(stock_router, tags=["stock"])
router.include_router(alerts_router, tags=["alerts"])
router.include_router(technicians_router, tags=["technicians"])
