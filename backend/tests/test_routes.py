"""
HTTP boundary tests: status codes and error bodies for the JSON API.
"""
from datetime import date, timedelta
from decimal import Decimal


def test_health_is_healthy(client, db_session, safe_a):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"]["details"]["safes"] == 1
    assert body["timestamp"].endswith("Z")


def test_health_degrades_when_a_safe_drifts(client, db_session, safe_a):
    safe_a.current_balance = Decimal("999.00")
    db_session.commit()

    body = client.get("/health").get_json()
    assert body["status"] == "degraded"
    assert body["checks"]["cash_conservation"]["details"]["safes"][0]["gap"] == "-1.00"


def test_create_and_fetch_business_unit(client, db_session):
    response = client.post("/api/business-units", json={"name": "Scrapyard", "business_type": "scrapyard"})
    assert response.status_code == 201
    unit = response.get_json()
    assert unit["business_type"] == "SCRAPYARD"

    assert client.get(f"/api/business-units/{unit['id']}").get_json()["name"] == "Scrapyard"
    assert client.get("/api/business-units/999").status_code == 404


def test_cash_transfer(client, retail, safe_a, safe_b):
    response = client.post("/api/cash/transfer", json={
        "from_safe_id": safe_a.id,
        "to_safe_id": safe_b.id,
        "amount": "300.00",
        "business_unit_id": retail.id,
        "notes": "float top-up",
    })
    assert response.status_code == 201
    body = response.get_json()
    assert body["transfer_out"]["amount"] == "-300.00"
    assert body["transfer_in"]["amount"] == "300.00"
    assert body["ledger_entry"]["type"] == "TRANSFER"

    balance = client.get(f"/api/cash/safes/{safe_a.id}").get_json()
    assert balance["current_balance"] == "700.00"

    entries = client.get(f"/api/cash/safes/{safe_b.id}/entries").get_json()
    assert [e["type"] for e in entries] == ["TRANSFER_IN"]


def test_cash_transfer_insufficient_funds_is_409(client, retail, safe_a, safe_b):
    response = client.post("/api/cash/transfer", json={
        "from_safe_id": safe_b.id,
        "to_safe_id": safe_a.id,
        "amount": "250.00",
        "business_unit_id": retail.id,
    })
    assert response.status_code == 409
    body = response.get_json()
    assert "Insufficient funds" in body["error"]
    assert body["details"] == {"safe": "Safe B", "required": "250.00", "available": "200.00"}


def test_unknown_safe_and_missing_fields(client, retail, safe_a):
    assert client.get("/api/cash/safes/999").status_code == 404

    response = client.post("/api/cash/transfer", json={"from_safe_id": safe_a.id, "amount": "1"})
    assert response.status_code == 400
    assert "to_safe_id" in response.get_json()["error"]

    response = client.post("/api/cash/transfer", data="not json", content_type="text/plain")
    assert response.status_code == 400


def test_on_account_sale_without_customer_is_400(client, retail, make_product):
    drill = make_product(retail, "Drill", qty=5, cost="4")
    response = client.post("/api/sales", json={
        "business_unit_id": retail.id,
        "payment_method": "ON_ACCOUNT",
        "lines": [{"product_id": drill.id, "quantity": 1}],
    })
    assert response.status_code == 400
    assert client.get(f"/api/sales?business_unit_id={retail.id}").get_json() == []


def test_sale_short_stock_is_409(client, retail, safe_a, make_product):
    drill = make_product(retail, "Drill", qty=1, cost="4")
    response = client.post("/api/sales", json={
        "business_unit_id": retail.id,
        "payment_method": "CASH",
        "safe_id": safe_a.id,
        "lines": [{"product_id": drill.id, "quantity": 2}],
    })
    assert response.status_code == 409
    assert response.get_json()["details"]["product"] == "Drill"


def test_ids_sent_as_text_are_accepted(client, retail, safe_a, make_product):
    drill = make_product(retail, "Drill", qty=5, cost="4")
    response = client.post("/api/sales", json={
        "business_unit_id": str(retail.id),
        "payment_method": "CASH",
        "safe_id": str(safe_a.id),
        "lines": [{"product_id": str(drill.id), "quantity": "1"}],
    })
    assert response.status_code == 201
    assert response.get_json()["business_unit_id"] == retail.id

    response = client.post("/api/stock-takes", json={
        "business_unit_id": str(retail.id),
        "items": [{"product_id": drill.id, "counted_qty": "4"}],
    })
    assert response.status_code == 201


def test_list_endpoints_require_business_unit(client, db_session):
    for url in ("/api/products", "/api/sales", "/api/reports/ledger"):
        response = client.get(url)
        assert response.status_code == 400
        assert response.get_json() == {"error": "business_unit_id is required"}


def test_ledger_report_endpoint(client, retail, safe_a):
    client.post("/api/cash/expenses", json={
        "business_unit_id": retail.id,
        "safe_id": safe_a.id,
        "amount": "12.50",
        "description": "Cleaning materials",
    })
    today = date.today()
    response = client.get(
        "/api/reports/ledger",
        query_string={
            "business_unit_id": retail.id,
            "start_date": (today - timedelta(days=1)).isoformat(),
            "end_date": (today + timedelta(days=1)).isoformat(),
        },
    )
    assert response.status_code == 200
    body = response.get_json()
    assert body["summary"]["total_expense"] == "12.50"
    assert body["transactions"][0]["description"] == "Cleaning materials"


def test_task_trigger_endpoint(client, retail):
    task = client.post("/api/tasks", json={
        "business_unit_id": retail.id, "title": "Pick order", "task_type": "PICKING",
    }).get_json()

    response = client.post(f"/api/tasks/{task['id']}/complete", json={"assignee_id": 3})
    assert response.status_code == 200
    body = response.get_json()
    assert body["task"]["status"] == "COMPLETED"
    assert body["follow_up"]["task_type"] == "DELIVERY"

    response = client.post(f"/api/tasks/{task['id']}/start")
    assert response.status_code == 400
    assert response.get_json()["details"]["status"] == "COMPLETED"


def test_job_card_endpoints(client, panel_shop, make_product):
    filler = make_product(panel_shop, "Body Filler 1L", qty=3, cost="40")

    response = client.post("/api/jobs", json={
        "business_unit_id": panel_shop.id,
        "customer_name": "Sipho Mokoena",
        "vehicle_details": "Toyota Corolla",
    })
    assert response.status_code == 201
    job = response.get_json()
    assert job["status"] == "In Progress"

    response = client.post(f"/api/jobs/{job['id']}/items", json={"product_id": filler.id, "quantity_used": 2})
    assert response.status_code == 201
    assert response.get_json()["line_cost"] == "80.00"

    response = client.post(f"/api/jobs/{job['id']}/items", json={"product_id": filler.id, "quantity_used": 2})
    assert response.status_code == 409

    body = client.get(f"/api/jobs/{job['id']}").get_json()
    assert body["total_parts_cost"] == "80.00"
    assert len(body["items"]) == 1

    assert client.post("/api/jobs/424242/items", json={"product_id": filler.id, "quantity_used": 1}).status_code == 404
