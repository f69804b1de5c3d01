# main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi import Request
import json
import logging

# import your routers and db init
from clinic_portal.config import CORS_ORIGINS
from clinic_portal.database import init_db
from clinic_portal.exceptions import BackendError, PortalError
from clinic_portal.utils import error_resp
from clinic_portal.routers import (
    auth_router,
    employees_router,
    executions_router,
    login_records_router,
    roster_router,
    stats_router,
    treatments_router,
)


# Initialize database
init_db()

app = FastAPI(title="Clinic Staff Portal API", version="1.0.0", description="Clinic Staff Portal API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router.router)
app.include_router(employees_router.router)
app.include_router(treatments_router.router)
app.include_router(roster_router.router)
app.include_router(executions_router.router)
app.include_router(stats_router.router)
app.include_router(login_records_router.router)

logger = logging.getLogger("uvicorn.error")


# Uniform response middleware: wrap JSON responses in the required envelope
class UniformResponseMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)

            # Don't wrap docs or openapi
            path = request.url.path
            if path.startswith("/docs") or path.startswith("/redoc") or path.startswith("/openapi"):
                return response

            # Excel exports and other non-JSON bodies pass through untouched
            content_type = response.headers.get("content-type", "")
            if "application/json" not in content_type:
                return response

            body_bytes = b"".join([chunk async for chunk in response.body_iterator])
            passthrough = Response(
                content=body_bytes,
                status_code=response.status_code,
                headers={k: v for k, v in response.headers.items() if k.lower() != "content-length"},
                media_type=content_type,
            )
            try:
                body = json.loads(body_bytes.decode()) if body_bytes else None
            except ValueError:
                return passthrough

            # If already in uniform format, return as-is
            if isinstance(body, dict) and set(("success", "message", "data")).issubset(body.keys()):
                return passthrough

            # Wrap the original body as data
            wrapped = {"success": True, "message": "Operation successful", "data": body if body is not None else {}}
            return JSONResponse(content=wrapped, status_code=response.status_code)

        except Exception:
            logger.exception("Error in UniformResponseMiddleware")
            return JSONResponse(content={"success": False, "message": "Internal server error", "data": {}}, status_code=500)


# attach middleware
app.add_middleware(UniformResponseMiddleware)


# Exception handlers to return uniform error shape
@app.exception_handler(PortalError)
async def portal_exception_handler(request: Request, exc: PortalError):
    if isinstance(exc, BackendError):
        logger.error("Backend failure on %s %s: %s", request.method, request.url.path, exc.message)
    return error_resp(exc.message, exc.status_code, exc.data)


# Starlette raises its own HTTPException for unknown routes and wrong methods
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # exc.detail may be dict or str
    msg = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return error_resp(msg or "Error", exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(p) for p in err.get("loc", ()) if p != "body") for err in exc.errors()]
    return error_resp("Invalid request", 422, {"fields": fields})


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    return error_resp("Internal server error")


@app.get("/")
def root():
    return {"message": "Clinic Staff Portal API is running"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


# -------------------------
# Custom OpenAPI (Bearer)
# -------------------------
def custom_openapi():
    # Return cached schema if already generated
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=getattr(app, "description", None),
        routes=app.routes,
    )

    # Add Bearer auth security scheme
    openapi_schema.setdefault("components", {}).setdefault("securitySchemes", {})
    openapi_schema["components"]["securitySchemes"]["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }

    # Login wizard endpoints are public; everything else needs the session token
    public_paths = ("/", "/health", "/api/auth/remembered", "/api/auth/identify", "/api/auth/setup-nickname", "/api/auth/verify-nickname")
    for path, path_item in openapi_schema.get("paths", {}).items():
        if path in public_paths:
            continue
        for method, operation in path_item.items():
            if not isinstance(operation, dict):
                continue
            security = operation.setdefault("security", [])
            if {"BearerAuth": []} not in security:
                security.append({"BearerAuth": []})

    app.openapi_schema = openapi_schema
    return app.openapi_schema


# Attach custom openapi to the app so /docs shows the Authorize button
app.openapi = custom_openapi
