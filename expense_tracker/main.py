from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Form, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from expense_tracker import auth, categories, crud, dashboard
from expense_tracker.api import get_today, router as api_router
from expense_tracker.config import get_settings
from expense_tracker.db import Base, engine, get_db
from expense_tracker.errors import ExpenseTrackerError, ValidationFailure
from expense_tracker.logs import configure_logging, get_logger
from expense_tracker.models import PAYMENT_METHODS, User
from expense_tracker.schemas import RecordIn, RegisterIn

configure_logging()
logger = get_logger(__name__)
settings = get_settings()

# ---------- App ----------
app = FastAPI(title="Expense Tracker", debug=settings.debug_mode)

BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"
STATIC_DIR = BASE_DIR / "static"

if STATIC_DIR.exists():
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.cors_origin],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(api_router)


@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)
    logger.info("startup", environment=settings.app_environment)


# ---------- Errors ----------
def _error_body(message: str, errors: Optional[list] = None) -> dict:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


@app.exception_handler(ExpenseTrackerError)
async def expense_tracker_error_handler(request: Request, exc: ExpenseTrackerError):
    errors = exc.errors if isinstance(exc, ValidationFailure) else None
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, errors))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content=_error_body("Validation error", errors))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and message == "Not Found":
        message = f"Route {request.url.path} not found"
    return JSONResponse(status_code=exc.status_code, content=_error_body(message), headers=exc.headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    # details stay in the server log
    logger.exception("unhandled_error", path=request.url.path, method=request.method)
    return JSONResponse(status_code=500, content=_error_body("Internal Server Error"))


# ---------- Pages ----------
def _page_user(request: Request, db: Session) -> Optional[User]:
    return auth.resolve_user(db, auth.get_request_token(request))


def _to_login() -> RedirectResponse:
    return RedirectResponse(url="/login", status_code=303)


def _first_error(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        err = exc.errors()[0]
        return f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
    if isinstance(exc, ValidationFailure) and exc.errors:
        return f"{exc.errors[0]['field']}: {exc.errors[0]['message']}"
    return str(exc)


def _signed_in(user: User, db: Session) -> RedirectResponse:
    token = auth.issue_token(db, user)
    response = RedirectResponse(url="/", status_code=303)
    response.set_cookie(
        auth.SESSION_COOKIE,
        token,
        httponly=True,
        samesite="lax",
        max_age=settings.token_ttl_days * 24 * 3600,
    )
    return response


@app.get("/login", response_class=HTMLResponse)
def login_page(request: Request):
    return templates.TemplateResponse(request, "login.html", {"mode": "login", "error": None})


@app.post("/login")
def login_submit(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db),
):
    try:
        user = auth.authenticate_user(db, email.strip(), password)
    except ExpenseTrackerError as exc:
        return templates.TemplateResponse(
            request, "login.html", {"mode": "login", "error": exc.message}, status_code=401
        )
    return _signed_in(user, db)


@app.get("/register", response_class=HTMLResponse)
def register_page(request: Request):
    return templates.TemplateResponse(request, "login.html", {"mode": "register", "error": None})


@app.post("/register")
def register_submit(
    request: Request,
    name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db),
):
    try:
        payload = RegisterIn(name=name, email=email.strip(), password=password)
        user = auth.register_user(db, payload.name, payload.email, payload.password)
    except (ValidationError, ExpenseTrackerError) as exc:
        return templates.TemplateResponse(
            request, "login.html", {"mode": "register", "error": _first_error(exc)}, status_code=400
        )
    return _signed_in(user, db)


@app.get("/logout")
def logout_page(request: Request, db: Session = Depends(get_db)):
    token = auth.get_request_token(request)
    if token:
        auth.revoke_token(db, token)
    response = _to_login()
    response.delete_cookie(auth.SESSION_COOKIE)
    return response


@app.get("/", response_class=HTMLResponse)
def home(
    request: Request,
    error: Optional[str] = None,
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
):
    user = _page_user(request, db)
    if user is None:
        return _to_login()

    summary = dashboard.load_summary(db, user.id, today)
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "user": user,
            "summary": summary,
            "categories": categories.list_categories(db),
            "today": today,
            "payment_methods": PAYMENT_METHODS,
            "error": error,
        },
    )


@app.get("/records", response_class=HTMLResponse)
def records_page(
    request: Request,
    page: int = 1,
    category: Optional[str] = None,
    kind: Optional[str] = None,
    db: Session = Depends(get_db),
):
    user = _page_user(request, db)
    if user is None:
        return _to_login()

    # empty filter fields arrive as ""
    category_id = int(category) if category and category.isdigit() else None

    limit = settings.default_page_size
    rows, total = crud.list_records(
        db, user.id, page=max(page, 1), limit=limit, category_id=category_id, kind=kind or None
    )
    return templates.TemplateResponse(
        request,
        "records.html",
        {
            "user": user,
            "records": rows,
            "categories": categories.list_categories(db),
            "page": max(page, 1),
            "total_pages": max(1, -(-total // limit)),
            "total": total,
            "category": category_id,
            "kind": kind,
        },
    )


@app.post("/records")
def add_record(
    request: Request,
    kind: str = Form("expense"),
    amount: str = Form(...),
    description: str = Form(...),
    category: int = Form(...),
    payment_method: str = Form("cash"),
    date_str: str = Form(""),
    db: Session = Depends(get_db),
):
    user = _page_user(request, db)
    if user is None:
        return _to_login()

    try:
        payload = RecordIn(
            kind=kind.strip().lower(),
            amount=Decimal(amount.strip()) if amount.strip() else None,
            description=description,
            category=category,
            payment_method=payment_method,
            date=date_str.strip() or None,
        )
        crud.create_record(
            db,
            user.id,
            amount=payload.amount,
            description=payload.description,
            category_id=payload.category,
            payment_method=payload.payment_method,
            kind=payload.kind,
            date_value=payload.date,
        )
    except (ArithmeticError, ValidationError, ValidationFailure) as exc:
        url = request.url_for("home").include_query_params(error=_first_error(exc))
        return RedirectResponse(url=str(url), status_code=303)

    return RedirectResponse(url="/", status_code=303)


@app.post("/records/{record_id}/delete")
def delete_record_page(record_id: int, request: Request, db: Session = Depends(get_db)):
    user = _page_user(request, db)
    if user is None:
        return _to_login()

    crud.delete_record(db, user.id, record_id)
    return RedirectResponse(url="/records", status_code=303)
