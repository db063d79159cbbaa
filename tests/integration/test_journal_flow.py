"""Journal endpoints end-to-end: accounts, trades, tags, snapshots, tradeTags."""

from httpx import AsyncClient

TRADE = {
    "accountID": 1,
    "strategyID": 2,
    "status": "OPEN",
    "symbol": "AAPL",
    "direction": "LONG",
    "plannedEntryPrice": 190.5,
    "plannedStopLoss": 185.0,
    "positionSize": 10,
}


class TestAccounts:
    async def test_crud_round_trip(self, auth_client: AsyncClient) -> None:
        resp = await auth_client.post("/api/v1/accounts", json={
            "userID": 1, "name": "main", "initialBalance": 5000, "currency": "USD",
        })
        assert resp.json()["code"] == 0
        account_id = resp.json()["data"]["id"]

        detail = (await auth_client.get(f"/api/v1/accounts/{account_id}")).json()
        assert detail["data"]["accounts"]["name"] == "main"
        assert detail["data"]["accounts"]["initialBalance"] == 5000

        resp = await auth_client.put(f"/api/v1/accounts/{account_id}", json={"name": "swing"})
        assert resp.json()["code"] == 0
        detail = (await auth_client.get(f"/api/v1/accounts/{account_id}")).json()
        assert detail["data"]["accounts"]["name"] == "swing"
        assert detail["data"]["accounts"]["currency"] == "USD"

        resp = await auth_client.delete(f"/api/v1/accounts/{account_id}")
        assert resp.json()["code"] == 0
        gone = (await auth_client.get(f"/api/v1/accounts/{account_id}")).json()
        assert gone["code"] == 100004

    async def test_reads_require_token(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/accounts/list", json={})
        assert resp.status_code == 401


class TestTrades:
    async def test_create_and_list(self, auth_client: AsyncClient) -> None:
        for symbol in ("AAPL", "MSFT"):
            resp = await auth_client.post("/api/v1/trades", json={**TRADE, "symbol": symbol})
            assert resp.json()["code"] == 0

        resp = await auth_client.post("/api/v1/trades/list", json={
            "sort": "symbol", "columns": [{"name": "status", "value": "OPEN"}],
        })
        data = resp.json()["data"]
        assert data["total"] == 2
        assert [t["symbol"] for t in data["trades"]] == ["AAPL", "MSFT"]
        assert data["trades"][0]["plannedEntryPrice"] == 190.5

    async def test_zero_update_is_a_no_op(self, auth_client: AsyncClient) -> None:
        trade_id = (await auth_client.post("/api/v1/trades", json=TRADE)).json()["data"]["id"]

        await auth_client.put(f"/api/v1/trades/{trade_id}", json={
            "plannedStopLoss": 0, "pnl": 42.0, "status": "CLOSED",
        })

        trade = (await auth_client.get(f"/api/v1/trades/{trade_id}")).json()["data"]["trades"]
        assert trade["plannedStopLoss"] == 185.0
        assert trade["pnl"] == 42.0
        assert trade["status"] == "CLOSED"

    async def test_ignore_count(self, auth_client: AsyncClient) -> None:
        await auth_client.post("/api/v1/trades", json=TRADE)
        resp = await auth_client.post("/api/v1/trades/list", json={"sort": "ignore count"})
        data = resp.json()["data"]
        assert data["total"] == 0
        assert len(data["trades"]) == 1

    async def test_create_missing_symbol(self, auth_client: AsyncClient) -> None:
        body = {k: v for k, v in TRADE.items() if k != "symbol"}
        resp = await auth_client.post("/api/v1/trades", json=body)
        assert resp.json()["code"] == 100001


class TestPublicReads:
    async def test_strategies_read_without_token_write_with(
        self, client: AsyncClient
    ) -> None:
        denied = await client.post("/api/v1/strategies", json={"userID": 1, "name": "trend"})
        assert denied.status_code == 401

        listed = await client.post("/api/v1/strategies/list", json={})
        assert listed.status_code == 200
        assert listed.json()["data"] == {"strategies": [], "total": 0}

    async def test_snapshot_lifecycle(self, auth_client: AsyncClient) -> None:
        resp = await auth_client.post("/api/v1/snapshots", json={
            "tradeID": 1, "type": "entry", "imageURL": "https://img/1.png",
        })
        snapshot_id = resp.json()["data"]["id"]

        detail = (await auth_client.get(f"/api/v1/snapshots/{snapshot_id}")).json()
        assert detail["data"]["snapshots"]["imageURL"] == "https://img/1.png"


class TestTradeTags:
    async def test_keyed_by_trade_id(self, auth_client: AsyncClient) -> None:
        resp = await auth_client.post("/api/v1/tradeTags", json={"tradeID": 5, "tagID": 2})
        assert resp.json()["data"] == {"tradeID": 5}

        await auth_client.put("/api/v1/tradeTags/5", json={"tagID": 3})
        detail = (await auth_client.get("/api/v1/tradeTags/5")).json()
        assert detail["data"]["tradeTags"]["tagID"] == 3

    async def test_duplicate_maps_to_entity_code(self, auth_client: AsyncClient) -> None:
        await auth_client.post("/api/v1/tradeTags", json={"tradeID": 5, "tagID": 2})
        resp = await auth_client.post("/api/v1/tradeTags", json={"tradeID": 5, "tagID": 9})
        assert resp.json()["code"] == 200101


class TestServiceEndpoints:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.json()["status"] == "ok"

    async def test_ping(self, client: AsyncClient) -> None:
        assert (await client.get("/ping")).json() == {"ping": "pong"}

    async def test_codes_lists_entity_tables(self, client: AsyncClient) -> None:
        codes = {c["code"] for c in (await client.get("/codes")).json()["data"]["codes"]}
        assert {0, 100001, 207801, 208009, 200101} <= codes


class TestRequestId:
    async def test_generated_id_matches_envelope(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/strategies/list", json={})
        assert resp.headers["X-Request-ID"] == resp.json()["request_id"]
        assert resp.json()["request_id"].startswith("req_")

    async def test_caller_id_is_reused(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/strategies/0", headers={"X-Request-ID": "trace-42"})
        assert resp.json()["code"] == 100001
        assert resp.json()["request_id"] == "trace-42"
        assert resp.headers["X-Request-ID"] == "trace-42"
