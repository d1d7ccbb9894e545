import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.audit.router import router as audit_router
from app.clients.router import router as clients_router
from app.common.exceptions import TrustAccountError
from app.config import settings
from app.documents.router import router as documents_router
from app.ledger.router import router as ledger_router
from app.matters.router import router as matters_router
from app.middleware import CorrelationIDMiddleware
from app.reports.router import router as reports_router
from app.settings.router import router as settings_router
from app.trust.router import holds_router, transactions_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    docs_url="/api/docs",
    openapi_url="/api/openapi.json",
)

# Middleware
app.add_middleware(CorrelationIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.backend_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error rendering
@app.exception_handler(TrustAccountError)
async def trust_account_error_handler(request: Request, exc: TrustAccountError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder({"error": exc.message, "code": exc.code, **exc.to_dict()}),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({"error": "Invalid input", "details": exc.errors()}),
    )


# Routers
app.include_router(clients_router, prefix="/api/clients", tags=["Clients"])
app.include_router(matters_router, prefix="/api/matters", tags=["Matters"])
app.include_router(documents_router, prefix="/api/matters", tags=["Documents"])
app.include_router(transactions_router, prefix="/api/transactions", tags=["Transactions"])
app.include_router(holds_router, prefix="/api/holds", tags=["Holds"])
app.include_router(settings_router, prefix="/api/settings", tags=["Settings"])
app.include_router(audit_router, prefix="/api/audit", tags=["Audit"])
app.include_router(reports_router, prefix="/api/reports", tags=["Reports"])
app.include_router(ledger_router, prefix="/api/ledger", tags=["Ledger"])


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "version": settings.app_version}
