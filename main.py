"""Murmur - anonymous text and voice messages."""

import logging
import time
from pathlib import Path
from urllib.parse import urlencode

from fastapi import Depends, FastAPI, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from slowapi.errors import RateLimitExceeded
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from murmur.config import get_settings
from murmur.database import get_db
from murmur.dependencies import (
    clear_auth_cookie,
    get_base_url,
    get_current_user_from_cookie,
    require_web_auth,
    set_auth_cookie,
)
from murmur.exceptions import ExportError, StorageError, UploadTooLargeError
from murmur.rate_limit import limiter
from murmur.routers import auth_router, messages_router, profiles_router, send_router, storage_router
from murmur.routers.auth import issue_token
from murmur.routers.messages import download_response, to_response
from murmur.services.auth import get_auth_service
from murmur.services.export import get_export_service
from murmur.services.message import get_message_service
from murmur.services.profile import get_profile_service

BASE_DIR = Path(__file__).resolve().parent

# Logging
logger = logging.getLogger("murmur")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

for warning in get_settings().validate():
    logger.warning(warning)

app = FastAPI(title="Murmur", version="0.1.0")
app.state.limiter = limiter


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; "
            "media-src 'self' blob:; "
            "connect-src 'self'; "
            "font-src 'self'"
        )
        return response


# --- Request size limit middleware ---
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    MAX_BODY_SIZE = (get_settings().MAX_AUDIO_UPLOAD_MB + 1) * 1024 * 1024  # slightly above max upload

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return JSONResponse(status_code=413, content={"detail": "Request body too large"})
        return await call_next(request)


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PATHS = {"/api/v1/send/", "/api/v1/auth/register", "/api/v1/auth/login", "/send/", "/register", "/login"}

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        # Log sensitive operations
        path = request.url.path
        method = request.method
        if method == "POST" and any(path.startswith(p) for p in self.AUDIT_PATHS):
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                method,
                path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)
app.add_middleware(AuditLogMiddleware)

# Static files
app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")

# Templates
templates = Jinja2Templates(directory=BASE_DIR / "templates")

# API routers
app.include_router(auth_router)
app.include_router(profiles_router)
app.include_router(send_router)
app.include_router(messages_router)
app.include_router(storage_router)


# --- Rate limit error handler ---
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Handle rate limit exceeded."""
    if request.url.path.startswith("/api/"):
        return JSONResponse(status_code=429, content={"detail": "Rate limit exceeded. Try again later."})
    return HTMLResponse(content="<h1>429</h1><p>Too many requests. Please try again later.</p>", status_code=429)


# --- Exception handler: 401 -> redirect to /login ---
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    """Handle HTTP exceptions. JSON for API paths, redirect 401 to login for web requests."""
    if request.url.path.startswith("/api/"):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)
    if exc.status_code == 401:
        return RedirectResponse(url="/login", status_code=302)
    return HTMLResponse(
        content=f"<h1>{exc.status_code}</h1><p>{exc.detail}</p>",
        status_code=exc.status_code,
    )


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": "murmur", "version": "0.1.0"}


def _login_redirect(result) -> RedirectResponse:
    response = RedirectResponse(url="/", status_code=302)
    set_auth_cookie(response, issue_token(result))
    return response


def _dashboard_redirect(**params: str) -> RedirectResponse:
    query = f"?{urlencode(params)}" if params else ""
    return RedirectResponse(url=f"/{query}", status_code=303)


# --- Web routes ---
@app.get("/login", response_class=HTMLResponse)
def login_page(request: Request) -> Response:
    """Render login page."""
    if get_current_user_from_cookie(request):
        return RedirectResponse(url="/", status_code=302)
    return templates.TemplateResponse(request, "login.html", {})


@app.post("/login", response_class=HTMLResponse)
def login_submit(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db),
) -> Response:
    """Handle login form submission."""
    result = get_auth_service().authenticate(db, email, password)
    if not result.success:
        return templates.TemplateResponse(request, "login.html", {"error": result.error, "email": email})
    return _login_redirect(result)


@app.get("/register", response_class=HTMLResponse)
def register_page(request: Request) -> Response:
    """Render register page."""
    if get_current_user_from_cookie(request):
        return RedirectResponse(url="/", status_code=302)
    return templates.TemplateResponse(request, "register.html", {})


@app.post("/register", response_class=HTMLResponse)
def register_submit(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    username: str = Form(""),
    display_name: str = Form(""),
    db: Session = Depends(get_db),
) -> Response:
    """Handle register form submission."""
    result = get_auth_service().register(db, email, password, username or None, display_name or None)
    if not result.success:
        return templates.TemplateResponse(
            request,
            "register.html",
            {"error": result.error, "email": email, "username": username, "display_name": display_name},
        )
    return _login_redirect(result)


@app.get("/logout")
def logout() -> RedirectResponse:
    """Clear auth cookie and redirect to login."""
    response = RedirectResponse(url="/login", status_code=302)
    clear_auth_cookie(response)
    return response


@app.get("/", response_class=HTMLResponse)
def dashboard(
    request: Request,
    error: str | None = None,
    notice: str | None = None,
    user=Depends(require_web_auth),
    db: Session = Depends(get_db),
) -> Response:
    """Render the recipient dashboard: share link and messages."""
    profiles = get_profile_service()
    profile = profiles.get_profile(db, user.user_id)
    if not profile:
        response = RedirectResponse(url="/login", status_code=302)
        clear_auth_cookie(response)
        return response

    base_url = get_base_url(request)
    message_service = get_message_service()
    messages = message_service.list_messages_for_recipient(db, user.user_id)
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "user": user,
            "profile": profile,
            "share_link": profiles.build_share_link(base_url, profile),
            "messages": [to_response(m, base_url) for m in messages],
            "unread": message_service.count_unread(db, user.user_id),
            "rendering": {m.id for m in messages if get_export_service().is_busy(m.id)},
            "error": error,
            "notice": notice,
        },
    )


@app.post("/profile")
def update_profile_submit(
    display_name: str = Form(...),
    user=Depends(require_web_auth),
    db: Session = Depends(get_db),
) -> RedirectResponse:
    """Handle display name form submission."""
    service = get_profile_service()
    profile = service.get_profile(db, user.user_id)
    if not profile or not display_name.strip():
        return _dashboard_redirect(error="Display name cannot be empty")
    service.update_display_name(db, profile, display_name)
    return _dashboard_redirect(notice="Display name updated")


@app.post("/messages/{message_id}/read")
def mark_read_submit(
    message_id: str,
    user=Depends(require_web_auth),
    db: Session = Depends(get_db),
) -> RedirectResponse:
    """Mark a message as read from the dashboard."""
    if not get_message_service().mark_read(db, message_id, user.user_id):
        return _dashboard_redirect(error="Message not found")
    return _dashboard_redirect()


@app.get("/messages/{message_id}/download/{kind}")
def download_from_dashboard(
    message_id: str,
    kind: str,
    user=Depends(require_web_auth),
    db: Session = Depends(get_db),
) -> Response:
    """Download an export from the dashboard. Failures come back as a dismissable notice."""
    message = get_message_service().get_message(db, message_id, user.user_id)
    if not message:
        return _dashboard_redirect(error="Message not found")

    exporters = {
        "audio": get_export_service().export_audio,
        "image": get_export_service().export_image,
        "video": get_export_service().export_video,
    }
    if kind not in exporters:
        raise HTTPException(status_code=404, detail="Unknown download type")

    try:
        artifact = exporters[kind](message)
    except (StorageError, ExportError) as e:
        logger.warning("%s export failed for message %s: %s", kind, message_id, e)
        return _dashboard_redirect(error=f"Failed to create {kind} download: {e}")
    return download_response(artifact)


def _render_send_page(request: Request, profile, status_code: int = 200, **context) -> Response:
    return templates.TemplateResponse(
        request,
        "send.html",
        {"profile": profile, "max_length": get_settings().MAX_MESSAGE_LENGTH, **context},
        status_code=status_code,
    )


def _profile_or_not_found(request: Request, db: Session, username: str):
    profile = get_profile_service().get_profile_by_handle(db, username)
    if not profile:
        return None, templates.TemplateResponse(request, "not_found.html", {"username": username}, status_code=404)
    return profile, None


@app.get("/send/{username}", response_class=HTMLResponse)
def send_page(request: Request, username: str, db: Session = Depends(get_db)) -> Response:
    """Public send page behind a share link."""
    profile, not_found = _profile_or_not_found(request, db, username)
    if not_found:
        return not_found
    return _render_send_page(request, profile)


@app.post("/send/{username}", response_class=HTMLResponse)
@limiter.limit("10/minute")
def send_text_submit(
    request: Request,
    username: str,
    text: str = Form(""),
    db: Session = Depends(get_db),
) -> Response:
    """Handle the anonymous text form."""
    profile, not_found = _profile_or_not_found(request, db, username)
    if not_found:
        return not_found
    try:
        get_message_service().send_text(db, profile.id, text)
    except ValueError as e:
        return _render_send_page(request, profile, status_code=400, error=str(e), text=text)
    return _render_send_page(request, profile, notice="Your anonymous message has been sent!")


@app.post("/send/{username}/audio", response_class=HTMLResponse)
@limiter.limit("10/minute")
async def send_audio_submit(
    request: Request,
    username: str,
    file: UploadFile,
    text: str = Form(""),
    db: Session = Depends(get_db),
) -> Response:
    """Handle the anonymous audio form (uploaded file or in-browser recording)."""
    profile, not_found = _profile_or_not_found(request, db, username)
    if not_found:
        return not_found
    try:
        await get_message_service().send_audio(db, profile.id, file, text or None)
    except ValueError as e:
        return _render_send_page(request, profile, status_code=400, error=str(e))
    except UploadTooLargeError as e:
        return _render_send_page(request, profile, status_code=413, error=str(e))
    except StorageError as e:
        logger.warning("Audio upload for %s failed: %s", username, e)
        return _render_send_page(request, profile, status_code=502, error="Failed to send audio message")
    return _render_send_page(request, profile, notice="Your anonymous audio message has been sent!")
