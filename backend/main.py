from fastapi import FastAPI, Request
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from db.database import create_db_and_tables
from routers.access import router as access_router
from routers.categories import router as categories_router
from routers.inventory import router as inventory_router
from routers.reports import router as reports_router
from routers.units import router as units_router
from core.auth import fastapi_users, auth_backend
from core.config import settings
from core.exceptions import InventoryError
from core.logging import RequestIdMiddleware, configure_logging
from contextlib import asynccontextmanager
from schemas.users import UserRead, UserCreate, UserUpdate
import logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    await create_db_and_tables()
    logger.info("DentaStock API started")
    yield


app = FastAPI(
    title="DentaStock API",
    description="Inventory and stock movement tracking for dental labs",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)


@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Authentication routes (fastapi-users)
app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"],)
app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_reset_password_router(), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_verify_router(UserRead), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])

# Team access
app.include_router(access_router, prefix="/access", tags=["access"])

# Inventory routes
app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
app.include_router(categories_router, prefix="/categories", tags=["categories"])
app.include_router(units_router, prefix="/units", tags=["units"])
app.include_router(reports_router, prefix="/reports", tags=["reports"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
