"roster: enrollment service"
from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.enrollment.service import EnrollmentService
from backend.enrollment.store import InMemoryEnrollmentStore
from backend.identity_access.tokens import (
    TokenConfig,
    TokenVerificationError,
    bearer_token,
    verify_access_token,
)
from backend.web import config as _cfg
from backend.web.routes.enrollments import enrollments_router, set_service


def _under_pytest() -> bool:
    import sys
    return "pytest" in sys.modules or bool(os.getenv("PYTEST_CURRENT_TEST"))


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via ROSTER_ENABLE_DOTENV (default true outside pytest).
    """
    if _under_pytest():
        return False
    flag = (os.getenv("ROSTER_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


try:
    from dotenv import load_dotenv
    if _should_load_dotenv():
        load_dotenv()
except ImportError:
    pass

# Minimal production safety checks (fail-fast on insecure config)
_cfg.ensure_secure_config_on_startup()
SETTINGS = _cfg.load_settings()

logging.basicConfig(format="%(levelname)s:%(name)s:%(message)s")
logging.getLogger("roster").setLevel(SETTINGS.log_level)
logger = logging.getLogger("roster.web")

TOKEN_CONFIG = TokenConfig(
    secret=SETTINGS.jwt_secret,
    algorithm=SETTINGS.jwt_algorithm,
    issuer=SETTINGS.jwt_issuer,
)

app = FastAPI(title="roster", description="Student course enrollments", version="1.0.0")


# --- Service wiring ----------------------------------------------------------------

def build_service(seed_students: tuple[str, ...] = ()) -> EnrollmentService:
    """Create the process-wide store and service, registering seed students."""
    store = InMemoryEnrollmentStore()
    for student_id in seed_students:
        store.register_student(student_id)
    if seed_students:
        logger.info("Seeded %d students", len(seed_students))
    return EnrollmentService(store)


SERVICE = build_service(SETTINGS.seed_students)
set_service(SERVICE)


# --- Auth Helpers & Middleware --------------------------------------------------

def _is_public_path(path: str) -> bool:
    return not path.startswith("/api/")


def _auth_error(error: str, message: str, *, status_code: int) -> JSONResponse:
    headers = {"Cache-Control": "private, no-store"}
    if status_code == 401:
        headers["WWW-Authenticate"] = "Bearer"
    return JSONResponse({"success": False, "error": error, "message": message}, status_code=status_code, headers=headers)


@app.middleware("http")
async def auth_enforcement(request: Request, call_next):
    if _is_public_path(request.url.path):
        return await call_next(request)

    token = bearer_token(request.headers.get("authorization"))
    if not token:
        return _auth_error("unauthenticated", "Authorization header is required", status_code=401)
    try:
        claim = verify_access_token(token, TOKEN_CONFIG)
    except TokenVerificationError as exc:
        logger.info("Access token rejected: %s", exc.code)
        if exc.code == "invalid_claims":
            return _auth_error("forbidden", "Invalid role", status_code=403)
        return _auth_error("unauthenticated", "Invalid or expired token", status_code=401)

    # Expose the verified, read-only identity for downstream handlers.
    request.state.user = claim
    return await call_next(request)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    return response


# --- Routers -----------------------------------------------------------------------

app.include_router(enrollments_router)


@app.get("/health")
async def health_check():
    # Minimal health endpoint used by orchestrators and tests.
    return JSONResponse({"status": "healthy"}, headers={"Cache-Control": "private, no-store"})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "backend.web.main:app",
        host=os.getenv("ROSTER_HOST", "0.0.0.0"),
        port=int(os.getenv("ROSTER_PORT", "8000")),
    )
