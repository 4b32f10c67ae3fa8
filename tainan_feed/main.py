# Load .env file BEFORE other imports (so env vars are available)
from dotenv import load_dotenv
load_dotenv()

from datetime import date
from urllib.parse import quote

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from tainan_feed.config import FeedConfig
from tainan_feed.errors import problem
from tainan_feed.logging_utils import log_event
from tainan_feed.middleware import request_id_middleware
from tainan_feed.render import page_context, templates
from tainan_feed.session import FeedSession, SessionState, SessionStore, make_loader
from tainan_feed.sources import Source


SESSION_COOKIE = "feed_session"


def build_session_store(cfg: FeedConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> SessionStore:
    return SessionStore(loader_factory=lambda: make_loader(cfg, transport=transport), cfg=cfg)


app = FastAPI(title="tainan-news-feed")

app.state.sessions = build_session_store(FeedConfig.from_env())

#Register middleware
app.middleware("http")(request_id_middleware)


def parse_day(date_str: str) -> date | None:
    try:
        return date.fromisoformat(date_str)
    except (TypeError, ValueError):
        return None


def render_ui_error(request: Request, status: int, message: str) -> HTMLResponse:
    """Return HTML error for UI routes (not JSON)."""
    return templates.TemplateResponse(
        request,
        "error.html",
        {"status": status, "message": message},
        status_code=status,
    )


def date_page_url(day: date, query: str | None = None) -> str:
    url = f"/ui/date/{day.isoformat()}"
    if query and query.strip():
        url += f"?q={quote(query.strip())}"
    return url


def get_session(request: Request) -> FeedSession | None:
    store: SessionStore = request.app.state.sessions
    return store.get(request.cookies.get(SESSION_COOKIE))


@app.get("/health")
def health(request: Request):
    request_id = request.state.request_id
    log_event("health_check", request_id=request_id)
    return {"status": "ok"}


@app.get("/")
def root():
    """Land on today's feed."""
    return RedirectResponse(url=date_page_url(date.today()), status_code=302)


@app.get("/ui/go")
def ui_go(request: Request, date: str = ""):
    """Target of the date picker form."""
    day = parse_day(date)
    if day is None:
        return render_ui_error(request, 400, "Invalid date format. Expected YYYY-MM-DD.")
    return RedirectResponse(url=date_page_url(day), status_code=303)


@app.get("/ui/date/{date_str}", response_class=HTMLResponse)
async def ui_date(request: Request, date_str: str, q: str | None = None):
    day = parse_day(date_str)
    if day is None:
        return render_ui_error(request, 400, "Invalid date format. Expected YYYY-MM-DD.")

    store: SessionStore = request.app.state.sessions
    session = store.get_or_create(request.cookies.get(SESSION_COOKIE), day=day)

    # A date change (or a fresh session) triggers the full fetch-and-replace cycle
    if session.day != day or session.state is SessionState.IDLE:
        await session.change_date(day)

    response = templates.TemplateResponse(
        request,
        "feed.html",
        page_context(session, query=q),
    )
    response.set_cookie(key=SESSION_COOKIE, value=session.session_id, httponly=True, samesite="lax")
    return response


@app.post("/ui/toggle/{source}/{item_id:path}")
def ui_toggle(request: Request, source: str, item_id: str, q: str | None = None):
    """Flip one item's expansion, then re-render the whole page."""
    try:
        src = Source(source)
    except ValueError:
        return render_ui_error(request, 400, f"Unknown source: {source}")

    session = get_session(request)
    if session is None:
        return RedirectResponse(url="/", status_code=303)

    session.toggle_expansion(f"{src.value}-{item_id}")
    return RedirectResponse(url=date_page_url(session.day, q), status_code=303)


@app.get("/api/date/{date_str}")
async def api_date(request: Request, date_str: str):
    request.state.day = date_str
    day = parse_day(date_str)
    if day is None:
        raise HTTPException(status_code=400, detail="Invalid date format. Expected YYYY-MM-DD")

    store: SessionStore = request.app.state.sessions
    result = await store.loader()(day)

    return {
        "date": day.isoformat(),
        "count": len(result.items),
        "items": [it.model_dump(mode="json") for it in result.items],
        "report": result.report.model_dump(mode="json"),
    }


@app.get("/api/search")
async def api_search(request: Request, date: str, q: str = ""):
    request.state.day = date
    day = parse_day(date)
    if day is None:
        raise HTTPException(status_code=400, detail="Invalid date format. Expected YYYY-MM-DD")

    store: SessionStore = request.app.state.sessions
    session = FeedSession(loader=store.loader(), cfg=store.cfg, day=day)
    await session.load()
    matches = session.search(q)

    return {
        "date": day.isoformat(),
        "query": q.strip(),
        "count": len(matches),
        "total": len(session.items),
        "items": [it.model_dump(mode="json") for it in matches],
    }


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    rid = request.state.request_id
    day = getattr(request.state, "day", None)
    payload = problem(
        status=exc.status_code,
        code="http_error",
        message=str(exc.detail),
        request_id=rid,
        day=day,
    )
    log_event("http_error", request_id=rid, day=day, status=exc.status_code, message=str(exc.detail))
    resp = JSONResponse(status_code=exc.status_code, content=payload.model_dump(exclude_none=True))
    resp.headers["X-Request-ID"] = rid
    return resp


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return ProblemDetails for query/path validation errors."""
    rid = request.state.request_id

    # Extract first error for a clean message
    errors = exc.errors()
    if errors:
        first = errors[0]
        loc = ".".join(str(x) for x in first.get("loc", []))  #e.g., "query.date"
        msg = first.get("msg", "Validation error")
        message = f"{loc}: {msg}"
    else:
        message = "Validation error"

    payload = problem(status=422, code="validation_error", message=message, request_id=rid)

    log_event("validation_error", request_id=rid, message=message)
    resp = JSONResponse(status_code=422, content=payload.model_dump(exclude_none=True))
    resp.headers["X-Request-ID"] = rid
    return resp


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = getattr(request.state, "request_id", "")
    # Don't leak details to the client, but do log them
    log_event("internal_error", request_id=rid, path=request.url.path, error_type=type(exc).__name__)

    # Browser pages get the HTML error page, API callers get ProblemDetails
    if request.url.path.startswith("/ui"):
        resp = render_ui_error(request, 500, "Internal server error")
        resp.headers["X-Request-ID"] = rid
        return resp

    payload = problem(
        status=500,
        code="internal_error",
        message="Internal server error",
        request_id=rid,
        day=getattr(request.state, "day", None),
    )
    resp = JSONResponse(status_code=500, content=payload.model_dump(exclude_none=True))
    resp.headers["X-Request-ID"] = rid
    return resp
