import logging
from dataclasses import asdict, dataclass
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from config import get_settings
from csrf import generate_csrf_token, validate_csrf_token
from database import SessionLocal
from models import RECOMMENDED_CATEGORIES, TodoPriority, TransactionType, init_db
from periods import Period, local_today
from public_holidays import HolidayService
from scheduler import SchedulerManager
from schemas import (
    EventIn,
    EventOut,
    HolidayOut,
    MonthlyPointOut,
    NoteIn,
    NoteOut,
    PeriodTotalsOut,
    TodoIn,
    TodoOut,
    TodoStatus,
    TransactionIn,
    TransactionOut,
)
from services import (
    DataUnavailable,
    EventService,
    ExportService,
    MetricsService,
    NoteService,
    TodoService,
    TransactionService,
    suggest_categories,
)

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="FinanceFlow")


@dataclass(frozen=True)
class RequestContext:
    user_id: str


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_context(x_user_id: Optional[str] = Header(default=None)) -> RequestContext:
    # The identity provider in front of the app authenticates and sets this.
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing user identity")
    return RequestContext(user_id=x_user_id.strip())


def require_csrf(
    request: Request, ctx: RequestContext = Depends(get_context)
) -> RequestContext:
    token = request.headers.get("X-CSRF-Token", "")
    if not validate_csrf_token(token, ctx.user_id):
        raise HTTPException(status_code=400, detail="Invalid CSRF token")
    return ctx


def _http_error(exc: ValueError) -> HTTPException:
    message = str(exc)
    status = 404 if message.endswith("not found") else 400
    return HTTPException(status_code=status, detail=message)


def _period_out(period: Period) -> dict[str, object]:
    if period.is_all_time:
        return {"key": period.slug, "start": None, "end": None}
    return {
        "key": period.slug,
        "start": period.start.isoformat(),
        "end": period.end.isoformat(),
    }


scheduler_manager = SchedulerManager()


@app.on_event("startup")
def startup_event():
    init_db()
    scheduler_manager.start()


@app.on_event("shutdown")
def shutdown_event():
    scheduler_manager.stop()


@app.exception_handler(DataUnavailable)
async def data_unavailable_handler(request: Request, exc: DataUnavailable):
    return JSONResponse(
        status_code=503, content={"detail": str(exc), "state": "unavailable"}
    )


@app.get("/api/csrf-token")
def csrf_token(ctx: RequestContext = Depends(get_context)):
    return {"csrf_token": generate_csrf_token(ctx.user_id)}


@app.get("/api/categories")
def categories(type: Optional[TransactionType] = None):
    if type:
        return {type.value: list(RECOMMENDED_CATEGORIES[type])}
    return {kind.value: list(names) for kind, names in RECOMMENDED_CATEGORIES.items()}


@app.get("/api/categories/suggest")
def category_suggestions(type: TransactionType, q: str = ""):
    return {"query": q, "suggestions": suggest_categories(type, q)}


@app.get("/api/dashboard")
def dashboard(
    month: Optional[str] = None,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        view = MetricsService(db, ctx.user_id).dashboard(month)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        "period": _period_out(view.period),
        "totals": PeriodTotalsOut(**asdict(view.totals)),
        "expense_breakdown": view.expense_breakdown,
        "income_breakdown": view.income_breakdown,
        "monthly_series": [
            MonthlyPointOut(**asdict(point)) for point in view.monthly_series
        ],
        "recent": [TransactionOut.model_validate(txn) for txn in view.recent],
    }


@app.get("/api/monthly-series")
def monthly_series(
    ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)
):
    series = MetricsService(db, ctx.user_id).monthly_series()
    return [MonthlyPointOut(**asdict(point)) for point in series]


@app.get("/api/transactions")
def list_transactions(
    month: Optional[str] = None,
    type: Optional[TransactionType] = None,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        view = MetricsService(db, ctx.user_id).ledger(month, type)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        "period": _period_out(view.period),
        "type": view.kind.value if view.kind else None,
        "totals": PeriodTotalsOut(**asdict(view.totals)),
        "items": [TransactionOut.model_validate(txn) for txn in view.transactions],
    }


@app.post("/api/transactions", status_code=201)
def create_transaction(
    data: TransactionIn,
    ctx: RequestContext = Depends(require_csrf),
    db: Session = Depends(get_db),
):
    txn = TransactionService(db, ctx.user_id).create(data)
    return TransactionOut.model_validate(txn)


@app.get("/api/transactions/{transaction_id}")
def get_transaction(
    transaction_id: str,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    try:
        txn = TransactionService(db, ctx.user_id).get(transaction_id)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return TransactionOut.model_validate(txn)


@app.put("/api/transactions/{transaction_id}")
def update_transaction(
    transaction_id: str,
    data: TransactionIn,
    ctx: RequestContext = Depends(require_csrf),
    db: Session = Depends(get_db),
):
    try:
        txn = TransactionService(db, ctx.user_id).update(transaction_id, data)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return TransactionOut.model_validate(txn)


@app.delete("/api/transactions/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: str,
    ctx: RequestContext = Depends(require_csrf),
    db: Session = Depends(get_db),
):
    try:
        TransactionService(db, ctx.user_id).delete(transaction_id)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=204)


@app.get("/api/events")
def list_events(
    on: Optional[date] = None,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    service = EventService(db, ctx.user_id)
    events = service.on_date(on) if on else service.list_all()
    return [EventOut.model_validate(event) for event in events]


@app.post("/api/events", status_code=201)
def create_event(
    data: EventIn,
    ctx: RequestContext = Depends(require_csrf),
    db: Session = Depends(get_db),
):
    return EventOut.model_validate(EventService(db, ctx.user_id).create(data))


@app.put("/api/events/{event_id}")
def update_event(
    event_id: str,
    data: EventIn,
    ctx: RequestContext = Depends(require_csrf),
    db: Session = Depends(get_db),
):
    try:
        event = EventService(db, ctx.user_id).update(event_id, data)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return EventOut.model_validate(event)


@app.delete("/api/events/{event_id}", status_code=204)
def delete_event(
    event_id: str,
    ctx: RequestContext = Depends(require_csrf),
    db: Session = Depends(get_db),
):
    try:
        EventService(db, ctx.user_id).delete(event_id)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=204)


@app.get("/api/holidays")
def list_holidays(year: Optional[int] = None, on: Optional[date] = None):
    service = HolidayService()
    try:
        if on:
            holiday = service.on_date(on)
            holidays = [holiday] if holiday else []
        else:
            holidays = service.for_year(year or local_today().year)
    except ValueError as exc:
        raise _http_error(exc) from exc
    except RuntimeError as exc:
        logger.warning(f"holidays_unavailable: year={year} error={exc}")
        raise DataUnavailable("Holidays could not be loaded") from exc
    return [HolidayOut.model_validate(holiday) for holiday in holidays]


@app.get("/api/todos")
def list_todos(
    status: TodoStatus = "all",
    priority: Optional[TodoPriority] = None,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    service = TodoService(db, ctx.user_id)
    return {
        "counts": service.counts(),
        "items": [
            TodoOut.model_validate(todo) for todo in service.list(status, priority)
        ],
    }


@app.post("/api/todos", status_code=201)
def create_todo(
    data: TodoIn,
    ctx: RequestContext = Depends(require_csrf),
    db: Session = Depends(get_db),
):
    return TodoOut.model_validate(TodoService(db, ctx.user_id).create(data))


@app.put("/api/todos/{todo_id}")
def update_todo(
    todo_id: str,
    data: TodoIn,
    ctx: RequestContext = Depends(require_csrf),
    db: Session = Depends(get_db),
):
    try:
        todo = TodoService(db, ctx.user_id).update(todo_id, data)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return TodoOut.model_validate(todo)


@app.post("/api/todos/{todo_id}/toggle")
def toggle_todo(
    todo_id: str,
    ctx: RequestContext = Depends(require_csrf),
    db: Session = Depends(get_db),
):
    try:
        todo = TodoService(db, ctx.user_id).toggle(todo_id)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return TodoOut.model_validate(todo)


@app.delete("/api/todos/{todo_id}", status_code=204)
def delete_todo(
    todo_id: str,
    ctx: RequestContext = Depends(require_csrf),
    db: Session = Depends(get_db),
):
    try:
        TodoService(db, ctx.user_id).delete(todo_id)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=204)


@app.get("/api/notes")
def list_notes(
    q: Optional[str] = None,
    tag: Optional[str] = None,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    notes = NoteService(db, ctx.user_id).list(query=q, tag=tag)
    return [NoteOut.model_validate(note) for note in notes]


@app.get("/api/notes/tags")
def note_tags(ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    return NoteService(db, ctx.user_id).all_tags()


@app.post("/api/notes", status_code=201)
def create_note(
    data: NoteIn,
    ctx: RequestContext = Depends(require_csrf),
    db: Session = Depends(get_db),
):
    return NoteOut.model_validate(NoteService(db, ctx.user_id).create(data))


@app.put("/api/notes/{note_id}")
def update_note(
    note_id: str,
    data: NoteIn,
    ctx: RequestContext = Depends(require_csrf),
    db: Session = Depends(get_db),
):
    try:
        note = NoteService(db, ctx.user_id).update(note_id, data)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return NoteOut.model_validate(note)


@app.delete("/api/notes/{note_id}", status_code=204)
def delete_note(
    note_id: str,
    ctx: RequestContext = Depends(require_csrf),
    db: Session = Depends(get_db),
):
    try:
        NoteService(db, ctx.user_id).delete(note_id)
    except ValueError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=204)


@app.get("/api/export.json")
def export_json(ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    payload = ExportService(db, ctx.user_id).as_json()
    filename = f"financeflow-export-{local_today().isoformat()}.json"
    return JSONResponse(
        payload, headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@app.get("/api/export.csv")
def export_csv(ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    content = ExportService(db, ctx.user_id).transactions_csv()
    filename = f"financeflow-transactions-{local_today().isoformat()}.csv"
    return Response(
        content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
