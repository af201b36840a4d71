"""JSON API, mounted under /api."""

from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from expense_tracker import auth, categories, crud, dashboard
from expense_tracker.auth import get_current_user, require_admin
from expense_tracker.config import get_settings
from expense_tracker.db import get_db
from expense_tracker.models import User
from expense_tracker.schemas import (
    AuthOut,
    BreakdownItem,
    CategoryIn,
    CategoryOut,
    Kind,
    LoginIn,
    NoteIn,
    NoteOut,
    Pagination,
    ProfileUpdateIn,
    RecordIn,
    RecordOut,
    RecordPage,
    RecordUpdate,
    RegisterIn,
    SummaryOut,
    UserOut,
)

router = APIRouter(prefix="/api")


def get_today() -> date:
    return date.today()


def ok(data=None, message: Optional[str] = None) -> dict:
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    return body


def summary_to_schema(summary: dashboard.Summary) -> SummaryOut:
    return SummaryOut(
        total_expenses=float(summary.total_expenses),
        total_income=float(summary.total_income),
        balance=float(summary.balance),
        monthly_expenses=float(summary.monthly_expenses),
        category_breakdown=[
            BreakdownItem(category=s.category, amount=float(s.amount), percentage=s.percentage)
            for s in summary.category_breakdown
        ],
        recent_expenses=[RecordOut.from_record(r) for r in summary.recent_expenses],
    )


# ---------- Health ----------
@router.get("/health")
def health():
    return ok(message="API is running") | {"timestamp": datetime.now(timezone.utc).isoformat()}


# ---------- Auth ----------
@router.post("/auth/register", status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    user = auth.register_user(db, payload.name, payload.email, payload.password)
    token = auth.issue_token(db, user)
    return ok(AuthOut(user=UserOut.model_validate(user), token=token))


@router.post("/auth/login")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user = auth.authenticate_user(db, payload.email, payload.password)
    token = auth.issue_token(db, user)
    return ok(AuthOut(user=UserOut.model_validate(user), token=token))


@router.post("/auth/logout")
def logout(request: Request, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    auth.revoke_token(db, auth.get_request_token(request))
    return ok(message="Logged out successfully")


@router.get("/auth/profile")
def get_profile(user: User = Depends(get_current_user)):
    return ok(UserOut.model_validate(user))


@router.put("/auth/profile")
def put_profile(
    payload: ProfileUpdateIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = auth.update_profile(db, user, name=payload.name, email=payload.email)
    return ok(UserOut.model_validate(user))


# ---------- Expenses ----------
@router.get("/expenses")
def list_expenses(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=crud.MAX_PAGE_SIZE),
    category: Optional[int] = Query(None),
    kind: Optional[Kind] = Query(None),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    limit = limit or get_settings().default_page_size
    rows, total = crud.list_records(
        db,
        user.id,
        page=page,
        limit=limit,
        category_id=category,
        kind=kind,
        start_date=start_date,
        end_date=end_date,
    )
    result = RecordPage(
        data=[RecordOut.from_record(r) for r in rows],
        pagination=Pagination(page=page, limit=limit, total=total, total_pages=-(-total // limit)),
    )
    return ok(result)


@router.post("/expenses", status_code=201)
def create_expense(payload: RecordIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    record = crud.create_record(
        db,
        user.id,
        amount=payload.amount,
        description=payload.description,
        category_id=payload.category,
        payment_method=payload.payment_method,
        kind=payload.kind,
        date_value=payload.date,
    )
    return ok(RecordOut.from_record(record))


@router.get("/expenses/{record_id}")
def get_expense(record_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return ok(RecordOut.from_record(crud.get_record(db, user.id, record_id)))


@router.put("/expenses/{record_id}")
def update_expense(
    record_id: int,
    payload: RecordUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    record = crud.update_record(db, user.id, record_id, changes)
    return ok(RecordOut.from_record(record))


@router.delete("/expenses/{record_id}")
def delete_expense(record_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    crud.delete_record(db, user.id, record_id)
    return ok(message="Expense deleted successfully")


# ---------- Categories ----------
@router.get("/categories")
def list_categories(kind: Optional[Kind] = Query(None), db: Session = Depends(get_db)):
    rows = categories.list_categories(db, kind)
    return ok([CategoryOut.model_validate(c) for c in rows])


@router.post("/categories", status_code=201)
def create_category(payload: CategoryIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    category = categories.create_category(db, payload.name, payload.color, payload.icon, payload.kind)
    return ok(CategoryOut.model_validate(category))


@router.post("/categories/seed", status_code=201)
def seed_categories(
    kind: Optional[Kind] = Query(None),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rows = categories.seed_categories(db, None if kind is None else [kind])
    return ok(
        [CategoryOut.model_validate(c) for c in rows],
        message="Default categories seeded successfully",
    )


@router.get("/categories/{category_id}")
def get_category(category_id: int, db: Session = Depends(get_db)):
    return ok(CategoryOut.model_validate(categories.get_category(db, category_id)))


# ---------- Dashboard ----------
@router.get("/dashboard/stats")
def dashboard_stats(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    today: date = Depends(get_today),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    summary = dashboard.load_summary(db, user.id, today, start_date=start_date, end_date=end_date)
    return ok(summary_to_schema(summary))


# ---------- Notes ----------
@router.get("/notes")
def list_notes(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return ok([NoteOut.from_note(n) for n in crud.list_notes(db, user.id)])


@router.post("/notes", status_code=201)
def create_note(payload: NoteIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    note = crud.create_note(db, user.id, payload.content, payload.date)
    return ok(NoteOut.from_note(note))


@router.delete("/notes/{note_id}")
def delete_note(note_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    crud.delete_note(db, user.id, note_id)
    return ok(message="Note deleted successfully")
