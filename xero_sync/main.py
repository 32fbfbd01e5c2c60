from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from xero_sync.domains.external_accounting.xero.auth.routes import (
    router as xero_router,
)
from xero_sync.domains.orders.routes import router as orders_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    from xero_sync.core.database import prisma

    # Startup
    await prisma.connect()
    yield
    # Shutdown
    await prisma.disconnect()


app = FastAPI(
    title="Xero Sync API",
    description="Creates Xero invoices and payments for completed store orders",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(xero_router, prefix="/api/v1")
app.include_router(orders_router, prefix="/api/v1")


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "Xero Sync API is running"}


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}
