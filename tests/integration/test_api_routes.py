from decimal import Decimal

import pytest

from treasury_app.utils.time import today_utc


def _today_feed(feed_stub, feed_xml, overrides=None):
    today = today_utc()
    # a one-week window can reach back into the previous year
    feed_stub.documents.setdefault(today.year - 1, feed_xml([]))
    feed_stub.documents[today.year] = feed_xml([(f"{today.isoformat()}T00:00:00", overrides or {})])
    return today


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == "connected"
    assert body["cached_periods"] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_users_and_fund(client, make_user):
    user = await make_user("Dylan Huff", balance="100")

    response = await client.get("/api/v1/users")
    assert response.status_code == 200
    assert [u["name"] for u in response.json()] == ["Dylan Huff"]

    response = await client.post("/api/v1/fund", json={"user_id": user.id, "amount": 250.5})
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["user"]["balance"] == 350.5

    history = (await client.get(f"/api/v1/users/{user.id}/transactions")).json()
    assert len(history) == 1
    assert history[0]["type"] == "fund"
    assert history[0]["timestamp"].endswith("+00:00")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_withdraw_errors_map_to_400(client, make_user):
    user = await make_user(balance="10")

    response = await client.post("/api/v1/withdraw", json={"user_id": user.id, "amount": 20})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "insufficient balance"}

    response = await client.post("/api/v1/withdraw", json={"user_id": user.id, "amount": 0})
    assert response.status_code == 400

    response = await client.post("/api/v1/withdraw", json={"user_id": user.id})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid request body"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_fund_unknown_user_is_404(client):
    response = await client.post("/api/v1/fund", json={"user_id": 999, "amount": 10})
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_buy_uses_current_yield(client, make_user, feed_stub, feed_xml):
    _today_feed(feed_stub, feed_xml, {"BC_6MONTH": "4.50"})
    user = await make_user(balance="500000")

    response = await client.post(
        "/api/v1/buy", json={"user_id": user.id, "term": "6M", "face_value": 100000}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["balance"] == 402250.0
    assert body["face_value"] == 100000.0
    assert body["purchase_price"] == 97750.0
    assert body["discount"] == 2250.0
    assert body["yield"] == 4.5

    holdings = (await client.get(f"/api/v1/users/{user.id}/holdings")).json()
    assert len(holdings) == 1
    assert holdings[0]["security_type"] == "bill"
    assert holdings[0]["remaining_amount"] == 100000.0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_buy_rejections(client, make_user, feed_stub, feed_xml):
    _today_feed(feed_stub, feed_xml, {"BC_2YEAR": None})
    user = await make_user(balance="1000")

    response = await client.post("/api/v1/buy", json={"user_id": user.id, "term": "7Y", "face_value": 100})
    assert response.status_code == 400
    assert feed_stub.total_calls == 0

    response = await client.post("/api/v1/buy", json={"user_id": user.id, "term": "2Y", "face_value": 100})
    assert response.status_code == 503
    assert response.json()["error"] == "yield data not available for selected term"

    response = await client.post("/api/v1/buy", json={"user_id": user.id, "term": "10Y", "face_value": 5000})
    assert response.status_code == 400
    assert "Treasury Note" in response.json()["error"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_buy_when_feed_down_is_502(client, make_user, feed_stub):
    feed_stub.status_overrides[today_utc().year] = 500
    user = await make_user(balance="1000")

    response = await client.post("/api/v1/buy", json={"user_id": user.id, "term": "1M", "face_value": 100})

    assert response.status_code == 502
    assert response.json()["success"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_sell_errors(client, ledger, make_user):
    owner = await make_user("Owner", balance="10000")
    other = await make_user("Other", balance="0")
    await ledger.buy_treasury(owner.id, "1Y", 1000, Decimal("4.8"))
    holding_id = (await client.get(f"/api/v1/users/{owner.id}/holdings")).json()[0]["id"]

    response = await client.post(
        "/api/v1/sell", json={"user_id": other.id, "holding_id": holding_id, "amount": 100}
    )
    assert response.status_code == 403

    response = await client.post(
        "/api/v1/sell", json={"user_id": owner.id, "holding_id": holding_id + 1, "amount": 100}
    )
    assert response.status_code == 404

    response = await client.post(
        "/api/v1/sell", json={"user_id": owner.id, "holding_id": holding_id, "amount": 1000}
    )
    assert response.status_code == 200
    assert (await client.get(f"/api/v1/users/{owner.id}/holdings")).json() == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_current_yields(client, feed_stub, feed_xml):
    today = _today_feed(feed_stub, feed_xml)

    response = await client.get("/api/yields")

    assert response.status_code == 200
    body = response.json()
    assert body["date"] == today.isoformat()
    assert {"term": "10Y", "rate": 3.95} in body["yields"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_historical_yields(client, feed_stub, feed_xml):
    today = _today_feed(feed_stub, feed_xml)

    response = await client.get("/api/yields/historical", params={"period": "1W"})

    assert response.status_code == 200
    body = response.json()
    assert body["period"] == "1W"
    assert body["endDate"] == today.isoformat()
    assert body["terms"] == ["10Y", "5Y", "2Y"]
    assert body["data"] == [{"date": today.isoformat(), "10Y": 3.95, "5Y": 3.93, "2Y": 4.33}]

    health = (await client.get("/health")).json()
    assert health["cached_periods"] == ["1W"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_historical_invalid_period(client, feed_stub):
    response = await client.get("/api/yields/historical", params={"period": "2W"})

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid period. Must be one of:")
    assert feed_stub.total_calls == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_oversized_amount_is_structured_400(client, make_user):
    user = await make_user(balance="10")

    response = await client.post("/api/v1/fund", json={"user_id": user.id, "amount": "1e30"})

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert "amount must be less than" in response.json()["error"]
