import logging
from datetime import datetime, timezone
from pathlib import Path

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.middleware.sessions import SessionMiddleware

from config import get_settings
from database import SessionLocal
from schemas import (
    ChangeCredentialsIn,
    ExpenseCategoryOut,
    ExpenseIn,
    ExpenseUpdate,
    IncomeIn,
    IncomeSourceOut,
    IncomeUpdate,
    LoginIn,
    MonthListItem,
    MonthlyDataOut,
    SavingsGoalIn,
    SavingsGoalOut,
    SavingsGoalUpdate,
    YearlySummaryOut,
)
from services import (
    AuthenticationError,
    AuthService,
    ConflictError,
    ExpenseService,
    IncomeService,
    MonthService,
    NotFoundError,
    RequestContext,
    SavingsGoalService,
    YearlyService,
)

BASE_DIR = Path(__file__).resolve().parent
settings = get_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Finance Tracker")
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    session_cookie="finance_session",
    max_age=settings.session_max_age_secs,
    same_site="lax",
    https_only=settings.cookie_secure,
)
app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")
templates = Jinja2Templates(directory=BASE_DIR / "templates")


def static_path(path: str) -> str:
    return app.url_path_for("static", path=path)


templates.env.globals["static_path"] = static_path


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def require_auth(request: Request) -> RequestContext:
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return RequestContext(
        user_id=int(user_id), username=str(request.session.get("username", ""))
    )


def http_error(exc: ValueError) -> HTTPException:
    if isinstance(exc, AuthenticationError):
        return HTTPException(status_code=401, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())[1:])
        message = str(error.get("msg", "Invalid value"))
        messages.append(f"{field}: {message}" if field else message)
    return JSONResponse(
        status_code=400, content={"detail": "; ".join(messages) or "Invalid request"}
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("integrity_error: path=%s error=%s", request.url.path, exc.orig)
    return JSONResponse(
        status_code=409,
        content={"detail": "The change conflicts with existing data; reload and retry"},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/api/health")
def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


# Auth


@app.get("/api/auth/me")
def auth_me(request: Request):
    if request.session.get("user_id"):
        return {"authenticated": True, "username": request.session.get("username")}
    return {"authenticated": False}


@app.post("/api/auth/login")
def auth_login(data: LoginIn, request: Request, db: Session = Depends(get_db)):
    try:
        user = AuthService(db).authenticate(data.username, data.password)
    except ValueError as exc:
        logger.info("login_failed: reason=%s", exc)
        raise http_error(exc) from exc
    request.session["user_id"] = user.id
    request.session["username"] = user.username
    logger.info("login: user_id=%s", user.id)
    return {"success": True, "username": user.username}


@app.post("/api/auth/logout")
def auth_logout(request: Request):
    user_id = request.session.get("user_id")
    request.session.clear()
    if user_id:
        logger.info("logout: user_id=%s", user_id)
    return {"success": True}


@app.post("/api/auth/change-credentials")
def auth_change_credentials(
    data: ChangeCredentialsIn,
    request: Request,
    ctx: RequestContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    try:
        user = AuthService(db).change_credentials(ctx.user_id, data)
    except ValueError as exc:
        raise http_error(exc) from exc
    request.session["username"] = user.username
    return {"success": True, "username": user.username}


# Monthly ledgers


@app.get("/api/monthly", response_model=list[MonthListItem])
def list_months(
    ctx: RequestContext = Depends(require_auth), db: Session = Depends(get_db)
):
    return [MonthListItem.model_validate(m) for m in MonthService(db).list_months()]


@app.get("/api/monthly/{month}", response_model=MonthlyDataOut)
def get_month(
    month: str,
    ctx: RequestContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    try:
        monthly = MonthService(db).get_or_create(month)
    except ValueError as exc:
        raise http_error(exc) from exc
    return MonthlyDataOut.model_validate(monthly)


@app.delete("/api/monthly/{month}")
def delete_month(
    month: str,
    ctx: RequestContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    try:
        MonthService(db).delete(month)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {"success": True}


@app.post("/api/monthly/{month}/income", response_model=IncomeSourceOut)
def create_income(
    month: str,
    data: IncomeIn,
    ctx: RequestContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    try:
        income = IncomeService(db).create(month, data)
    except ValueError as exc:
        raise http_error(exc) from exc
    return IncomeSourceOut.model_validate(income)


@app.patch("/api/monthly/income/{income_id}", response_model=IncomeSourceOut)
def update_income(
    income_id: int,
    data: IncomeUpdate,
    ctx: RequestContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    try:
        income = IncomeService(db).update(income_id, data)
    except ValueError as exc:
        raise http_error(exc) from exc
    return IncomeSourceOut.model_validate(income)


@app.delete("/api/monthly/income/{income_id}")
def delete_income(
    income_id: int,
    ctx: RequestContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    try:
        IncomeService(db).delete(income_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {"success": True}


@app.post("/api/monthly/{month}/expense", response_model=ExpenseCategoryOut)
def create_expense(
    month: str,
    data: ExpenseIn,
    ctx: RequestContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    try:
        expense = ExpenseService(db).create(month, data)
    except ValueError as exc:
        raise http_error(exc) from exc
    return ExpenseCategoryOut.model_validate(expense)


@app.patch("/api/monthly/expense/{expense_id}", response_model=ExpenseCategoryOut)
def update_expense(
    expense_id: int,
    data: ExpenseUpdate,
    ctx: RequestContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    try:
        expense = ExpenseService(db).update(expense_id, data)
    except ValueError as exc:
        raise http_error(exc) from exc
    return ExpenseCategoryOut.model_validate(expense)


@app.delete("/api/monthly/expense/{expense_id}")
def delete_expense(
    expense_id: int,
    ctx: RequestContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    try:
        ExpenseService(db).delete(expense_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {"success": True}


# Savings goals


@app.get("/api/savings", response_model=list[SavingsGoalOut])
def list_savings_goals(
    ctx: RequestContext = Depends(require_auth), db: Session = Depends(get_db)
):
    return [
        SavingsGoalOut.model_validate(goal)
        for goal in SavingsGoalService(db).list_all()
    ]


@app.post("/api/savings", response_model=SavingsGoalOut)
def create_savings_goal(
    data: SavingsGoalIn,
    ctx: RequestContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    try:
        goal = SavingsGoalService(db).create(data)
    except ValueError as exc:
        raise http_error(exc) from exc
    return SavingsGoalOut.model_validate(goal)


@app.get("/api/savings/{goal_id}", response_model=SavingsGoalOut)
def get_savings_goal(
    goal_id: int,
    ctx: RequestContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    try:
        goal = SavingsGoalService(db).get(goal_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return SavingsGoalOut.model_validate(goal)


@app.patch("/api/savings/{goal_id}", response_model=SavingsGoalOut)
def update_savings_goal(
    goal_id: int,
    data: SavingsGoalUpdate,
    ctx: RequestContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    try:
        goal = SavingsGoalService(db).update(goal_id, data)
    except ValueError as exc:
        raise http_error(exc) from exc
    return SavingsGoalOut.model_validate(goal)


@app.delete("/api/savings/{goal_id}")
def delete_savings_goal(
    goal_id: int,
    ctx: RequestContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    try:
        SavingsGoalService(db).delete(goal_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {"success": True}


# Yearly review


@app.get("/api/yearly")
def list_years(
    ctx: RequestContext = Depends(require_auth), db: Session = Depends(get_db)
):
    return YearlyService(db).available_years()


@app.get("/api/yearly/{year}", response_model=YearlySummaryOut)
def yearly_summary(
    year: str,
    ctx: RequestContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    try:
        summary = YearlyService(db).summary(year)
    except ValueError as exc:
        raise http_error(exc) from exc
    return YearlySummaryOut.model_validate(summary)


# Front end


def render(request: Request, template: str, context: dict[str, object]) -> HTMLResponse:
    return templates.TemplateResponse(request, template, context)


@app.get("/", response_class=HTMLResponse)
def index(request: Request):
    return render(request, "index.html", {"title": "Finance Tracker"})


@app.get("/{full_path:path}", response_class=HTMLResponse)
def spa_fallback(full_path: str, request: Request):
    if full_path.startswith("api/") or full_path == "api":
        raise HTTPException(status_code=404, detail="Not found")
    return render(request, "index.html", {"title": "Finance Tracker"})


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
