"""
Punto de entrada principal de la aplicacion FastAPI de SpreadMarket.

Aqui se:
1. Configura el logging.
2. Crea la instancia de FastAPI (y las tablas al arrancar).
3. Configura los middlewares (CORS, rate limiting).
4. Registra los handlers de error y todas las rutas.

Arquitectura de la aplicacion:
------------------------------
    main.py (punto de entrada)
        |
        +-- routes/         (Controladores: reciben HTTP requests)
        |    +-- categories.py, dashboard.py, listings.py
        |    +-- reviews.py, payments.py, uploads.py
        |
        +-- services/       (Logica de negocio)
        |    +-- search.py, listings.py, dashboard.py, reviews.py
        |    +-- payments.py (Stripe), fulfillment.py
        |    +-- s3.py (boto3), uploads.py, validator.py, scanner.py
        |
        +-- models/
        |    +-- schemas.py   (DTOs de Pydantic)
        |    +-- entities.py  (tablas de SQLAlchemy)
        |
        +-- config.py, database.py, auth.py, exceptions.py, limiter.py

El flujo de una peticion HTTP es:
    Cliente -> CORS -> Rate limiter -> Router -> Endpoint -> Servicio -> BD/Stripe/S3
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from spreadmarket.config import settings
from spreadmarket.database import init_db
from spreadmarket.exceptions import (
    MarketplaceError,
    marketplace_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from spreadmarket.limiter import limiter
from spreadmarket.routes.categories import router as categories_router
from spreadmarket.routes.dashboard import router as dashboard_router
from spreadmarket.routes.listings import router as listings_router
from spreadmarket.routes.payments import router as payments_router
from spreadmarket.routes.reviews import router as reviews_router
from spreadmarket.routes.uploads import router as uploads_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting SpreadMarket API")
    init_db()
    yield
    logger.info("Shutting down SpreadMarket API")


app = FastAPI(title="SpreadMarket", lifespan=lifespan)

# ---------- Rate Limiter ----------

# SlowAPI busca el limiter en app.state; cuando una IP excede su limite
# lanza RateLimitExceeded y este handler responde 429.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ---------- Errores ----------

app.add_exception_handler(MarketplaceError, marketplace_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# ---------- CORS ----------

# NUNCA allow_origins=["*"] en produccion: los origenes vienen de
# CORS_ORIGINS="https://spreadmarket.com,https://admin.spreadmarket.com"
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
async def health_check():
    """Usado por load balancers y monitoreo: si responde 200, la app esta viva."""
    return {"status": "ok"}


# ---------- Registro de rutas ----------

app.include_router(categories_router)
app.include_router(dashboard_router)
app.include_router(listings_router)
app.include_router(reviews_router)
app.include_router(payments_router)
app.include_router(uploads_router)
