import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

import main
from models import User
from security import hash_password


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    with session_factory() as db:
        db.add(User(username="admin", password_hash=hash_password("secret123")))
        db.commit()

    main.app.dependency_overrides[main.get_db] = override_get_db
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()


@pytest.fixture()
def auth_client(client):
    resp = client.post(
        "/api/auth/login", json={"username": "admin", "password": "secret123"}
    )
    assert resp.status_code == 200
    return client


def test_health_is_public(client) -> None:
    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_login_sets_session(client) -> None:
    assert client.get("/api/auth/me").json() == {"authenticated": False}

    resp = client.post(
        "/api/auth/login", json={"username": "admin", "password": "secret123"}
    )

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "username": "admin"}
    assert "finance_session" in resp.cookies
    assert client.get("/api/auth/me").json() == {
        "authenticated": True,
        "username": "admin",
    }


def test_login_failures_share_one_response(client) -> None:
    wrong_password = client.post(
        "/api/auth/login", json={"username": "admin", "password": "nope-nope"}
    )
    unknown_user = client.post(
        "/api/auth/login", json={"username": "ghost", "password": "secret123"}
    )

    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json() == {
        "detail": "Invalid credentials"
    }


def test_login_requires_both_fields(client) -> None:
    resp = client.post("/api/auth/login", json={"username": "admin"})

    assert resp.status_code == 400
    assert resp.json() == {"detail": "Username and password required"}


def test_logout_clears_session(auth_client) -> None:
    assert auth_client.post("/api/auth/logout").json() == {"success": True}

    assert auth_client.get("/api/auth/me").json() == {"authenticated": False}
    assert auth_client.get("/api/monthly").status_code == 401


@pytest.mark.parametrize(
    "method,path",
    [
        ("get", "/api/monthly"),
        ("get", "/api/monthly/2025-01"),
        ("delete", "/api/monthly/2025-01"),
        ("post", "/api/monthly/2025-01/income"),
        ("patch", "/api/monthly/expense/1"),
        ("get", "/api/savings"),
        ("post", "/api/savings"),
        ("get", "/api/yearly"),
        ("get", "/api/yearly/2025"),
        ("post", "/api/auth/change-credentials"),
    ],
)
def test_protected_routes_require_login(client, method, path) -> None:
    kwargs = {"json": {}} if method in {"post", "patch"} else {}
    resp = getattr(client, method)(path, **kwargs)

    assert resp.status_code == 401
    assert resp.json() == {"detail": "Authentication required"}


def test_month_payload_is_camel_case_with_string_money(auth_client) -> None:
    resp = auth_client.get("/api/monthly/2025-01")

    assert resp.status_code == 200
    body = resp.json()
    assert body["month"] == "2025-01"
    assert body["incomeSources"] == []
    assert [c["name"] for c in body["expenseCategories"]] == [
        "Rent",
        "Groceries",
        "Car Insurance",
        "Clothes",
        "Other",
    ]
    rent = body["expenseCategories"][0]
    assert rent["budgeted"] == "0.00"
    assert rent["actual"] == "0.00"
    assert rent["isPaid"] is False
    assert rent["showPaidStatus"] is True
    assert rent["monthlyDataId"] == body["id"]
    assert "createdAt" in body and "updatedAt" in body


def test_invalid_month_key_is_bad_request(auth_client) -> None:
    resp = auth_client.get("/api/monthly/2025-1")

    assert resp.status_code == 400
    assert resp.json() == {"detail": "Invalid month format. Use YYYY-MM"}
    assert auth_client.get("/api/monthly").json() == []


def test_month_list_is_newest_first(auth_client) -> None:
    for key in ["2025-01", "2025-03", "2024-11"]:
        auth_client.get(f"/api/monthly/{key}")

    months = auth_client.get("/api/monthly").json()

    assert [m["month"] for m in months] == ["2025-03", "2025-01", "2024-11"]
    assert set(months[0]) == {"id", "month"}


def test_income_lifecycle(auth_client) -> None:
    auth_client.get("/api/monthly/2025-01")

    created = auth_client.post(
        "/api/monthly/2025-01/income",
        json={"name": "Salary", "expected": 3000, "actual": "2950.5"},
    )
    assert created.status_code == 200
    income = created.json()
    assert income["expected"] == "3000.00"
    assert income["actual"] == "2950.50"

    patched = auth_client.patch(
        f"/api/monthly/income/{income['id']}", json={"actual": "3100"}
    )
    assert patched.status_code == 200
    assert patched.json()["name"] == "Salary"
    assert patched.json()["expected"] == "3000.00"
    assert patched.json()["actual"] == "3100.00"

    assert auth_client.delete(f"/api/monthly/income/{income['id']}").json() == {
        "success": True
    }
    month = auth_client.get("/api/monthly/2025-01").json()
    assert month["incomeSources"] == []


def test_add_income_to_missing_month_is_not_found(auth_client) -> None:
    resp = auth_client.post("/api/monthly/2030-01/income", json={})

    assert resp.status_code == 404
    assert resp.json() == {"detail": "Month not found"}


def test_expense_defaults_and_patch(auth_client) -> None:
    auth_client.get("/api/monthly/2025-01")

    created = auth_client.post("/api/monthly/2025-01/expense", json={}).json()
    assert created["name"] == "New Category"
    assert created["budgeted"] == "0.00"
    assert created["showPaidStatus"] is False

    patched = auth_client.patch(
        f"/api/monthly/expense/{created['id']}",
        json={"actual": 42.1, "isPaid": True, "showPaidStatus": True},
    ).json()
    assert patched["actual"] == "42.10"
    assert patched["isPaid"] is True
    assert patched["showPaidStatus"] is True
    assert patched["name"] == "New Category"


@pytest.mark.parametrize(
    "payload",
    [
        {"actual": "abc"},
        {"actual": -5},
        {"budgeted": "NaN"},
        {"actual": "1e30"},
        {"actual": "12345678901234567.89"},
        {"budgeted": 100000000},
    ],
)
def test_bad_amounts_are_rejected(auth_client, payload) -> None:
    month = auth_client.get("/api/monthly/2025-01").json()
    expense_id = month["expenseCategories"][0]["id"]

    resp = auth_client.patch(f"/api/monthly/expense/{expense_id}", json=payload)

    assert resp.status_code == 400
    after = auth_client.get("/api/monthly/2025-01").json()["expenseCategories"][0]
    assert after["actual"] == "0.00"
    assert after["budgeted"] == "0.00"


def test_largest_amount_is_stored_exactly(auth_client) -> None:
    month = auth_client.get("/api/monthly/2025-01").json()
    expense_id = month["expenseCategories"][0]["id"]

    resp = auth_client.patch(
        f"/api/monthly/expense/{expense_id}", json={"actual": "99999999.99"}
    )

    assert resp.status_code == 200
    assert resp.json()["actual"] == "99999999.99"
    after = auth_client.get("/api/monthly/2025-01").json()["expenseCategories"][0]
    assert after["actual"] == "99999999.99"


def test_unknown_ids_are_not_found(auth_client) -> None:
    assert auth_client.patch("/api/monthly/income/999", json={}).status_code == 404
    assert auth_client.delete("/api/monthly/expense/999").status_code == 404
    assert auth_client.get("/api/savings/999").status_code == 404
    assert auth_client.delete("/api/monthly/2031-01").status_code == 404


def test_non_numeric_id_is_bad_request(auth_client) -> None:
    resp = auth_client.patch("/api/monthly/income/abc", json={})

    assert resp.status_code == 400
    assert "income_id" in resp.json()["detail"]


def test_delete_month_cascades(auth_client) -> None:
    auth_client.get("/api/monthly/2025-01")
    income = auth_client.post(
        "/api/monthly/2025-01/income", json={"name": "Salary"}
    ).json()

    assert auth_client.delete("/api/monthly/2025-01").json() == {"success": True}

    assert auth_client.get("/api/monthly").json() == []
    assert auth_client.patch(
        f"/api/monthly/income/{income['id']}", json={"actual": 1}
    ).status_code == 404


def test_savings_goal_crud(auth_client) -> None:
    first = auth_client.post("/api/savings", json={}).json()
    assert first["name"] == "New Goal"
    assert first["targetAmount"] == "0.00"
    assert first["currentAmount"] == "0.00"

    second = auth_client.post(
        "/api/savings",
        json={"name": "Holiday", "targetAmount": "2500", "currentAmount": 300},
    ).json()

    goals = auth_client.get("/api/savings").json()
    assert [g["id"] for g in goals] == [second["id"], first["id"]]

    patched = auth_client.patch(
        f"/api/savings/{second['id']}", json={"currentAmount": "450.25"}
    ).json()
    assert patched["name"] == "Holiday"
    assert patched["targetAmount"] == "2500.00"
    assert patched["currentAmount"] == "450.25"

    assert auth_client.get(f"/api/savings/{second['id']}").json() == patched
    assert auth_client.delete(f"/api/savings/{first['id']}").json() == {
        "success": True
    }
    assert [g["id"] for g in auth_client.get("/api/savings").json()] == [second["id"]]


def test_yearly_report(auth_client) -> None:
    for key, salary, rent in [("2025-01", "2000", "1000"), ("2025-02", "2000", "1500")]:
        month = auth_client.get(f"/api/monthly/{key}").json()
        auth_client.post(
            f"/api/monthly/{key}/income",
            json={"name": "Salary", "expected": salary, "actual": salary},
        )
        rent_id = month["expenseCategories"][0]["id"]
        auth_client.patch(f"/api/monthly/expense/{rent_id}", json={"actual": rent})
    auth_client.get("/api/monthly/2024-12")

    assert auth_client.get("/api/yearly").json() == ["2025", "2024"]

    report = auth_client.get("/api/yearly/2025").json()
    assert report["year"] == "2025"
    assert report["monthCount"] == 2
    assert report["totals"]["effectiveIncome"] == "4000.00"
    assert report["totals"]["actualExpenses"] == "2500.00"
    assert report["totals"]["savings"] == "1500.00"
    assert report["averages"]["monthlySavings"] == "750.00"
    assert report["savingsRate"] == pytest.approx(37.5)
    assert [m["month"] for m in report["monthlyBreakdown"]] == ["2025-01", "2025-02"]
    assert report["categoryBreakdown"][0] == {
        "name": "Rent",
        "budgeted": "0.00",
        "actual": "2500.00",
        "variance": "-2500.00",
    }
    assert report["highlights"]["bestMonth"]["month"] == "2025-01"
    assert report["highlights"]["worstMonth"]["month"] == "2025-02"
    assert report["highlights"]["topSpendingCategory"]["name"] == "Rent"


def test_yearly_rejects_bad_year(auth_client) -> None:
    resp = auth_client.get("/api/yearly/25")

    assert resp.status_code == 400
    assert resp.json() == {"detail": "Invalid year format. Use YYYY"}


def test_change_credentials_updates_session_username(auth_client) -> None:
    resp = auth_client.post(
        "/api/auth/change-credentials",
        json={"currentPassword": "secret123", "newUsername": "owner"},
    )

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "username": "owner"}
    assert auth_client.get("/api/auth/me").json()["username"] == "owner"


def test_change_credentials_wrong_password(auth_client) -> None:
    resp = auth_client.post(
        "/api/auth/change-credentials",
        json={"currentPassword": "bad-pass", "newPassword": "hunter22"},
    )

    assert resp.status_code == 401
    assert resp.json() == {"detail": "Current password is incorrect"}


def test_change_credentials_taken_username_conflicts(
    auth_client, session_factory
) -> None:
    with session_factory() as db:
        db.add(User(username="taken", password_hash=hash_password("other-pass")))
        db.commit()

    resp = auth_client.post(
        "/api/auth/change-credentials",
        json={"currentPassword": "secret123", "newUsername": "taken"},
    )

    assert resp.status_code == 409
    assert resp.json() == {"detail": "Username already taken"}
    assert auth_client.get("/api/auth/me").json()["username"] == "admin"


def test_integrity_error_escaping_a_route_is_a_conflict(
    auth_client, monkeypatch
) -> None:
    def collide(self, month):
        raise IntegrityError("INSERT INTO monthly_data", {}, Exception("UNIQUE"))

    monkeypatch.setattr(main.MonthService, "get_or_create", collide)

    resp = auth_client.get("/api/monthly/2025-01")

    assert resp.status_code == 409
    assert resp.json() == {
        "detail": "The change conflicts with existing data; reload and retry"
    }


def test_index_and_client_routes_serve_the_app(client) -> None:
    for path in ["/", "/savings", "/yearly/2025"]:
        resp = client.get(path)
        assert resp.status_code == 200
        assert "Finance Tracker" in resp.text

    assert client.get("/api/nope").status_code == 404
