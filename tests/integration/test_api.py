"""Integration tests for the exchange HTTP API."""

from collections.abc import Iterator
from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient

from exchange.api.endpoints import get_exchange
from exchange.api.main import app, status_for
from exchange.engine import Exchange
from exchange.errors import (
    InsufficientOutput,
    NotAuthorized,
    PairAlreadyExists,
    PairNotFound,
    ReentrancyError,
    RewardAccountingError,
)
from exchange.ledger import InMemoryLedger
from exchange.safe_int import ArithmeticOverflow
from tests.helpers import ALICE, BOB, CAROL, CUSTODY, DAI, REWARD, UNKNOWN, USDC, WETH

# Mixed-case form of WETH, as clients commonly send it
WETH_CHECKSUM = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"


@pytest.fixture
def engine(make_exchange) -> Exchange:
    return make_exchange()


@pytest.fixture
def client(engine: Exchange) -> Iterator[TestClient]:
    """Test client bound to an isolated engine."""
    app.dependency_overrides[get_exchange] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(client: TestClient) -> TestClient:
    """WETH/USDC pool with 1000/1000 deposited by ALICE at block 100."""
    client.post("/pairs", json={"tokenA": WETH, "tokenB": USDC})
    client.post(
        "/liquidity",
        json={"sender": ALICE, "tokenA": WETH, "tokenB": USDC, "desiredA": "1000", "desiredB": "1000"},
    )
    return client


def error_of(response) -> str:
    return response.json()["error"]


class TestHealth:
    def test_health_check(self, client):
        """Health endpoint returns ok."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestTokens:
    """Tests for token registration."""

    def test_register(self, client):
        response = client.post("/tokens", json={"token": REWARD})
        assert response.status_code == 201
        assert response.json() == {"token": REWARD}
        assert REWARD in client.get("/tokens").json()

    def test_register_normalizes_case(self, client, engine):
        engine.ledger.mint(UNKNOWN, BOB, 1)
        response = client.post("/tokens", json={"token": UNKNOWN.upper().replace("0X", "0x")})
        assert response.json() == {"token": UNKNOWN}

    def test_already_registered(self, client):
        response = client.post("/tokens", json={"token": WETH_CHECKSUM})
        assert response.status_code == 409
        assert error_of(response) == "AlreadyRegistered"

    def test_zero_supply(self, client):
        response = client.post("/tokens", json={"token": UNKNOWN})
        assert response.status_code == 400
        assert error_of(response) == "InvalidToken"

    def test_malformed_address(self, client):
        response = client.post("/tokens", json={"token": "0x1234"})
        assert response.status_code == 422


class TestPairs:
    """Tests for pair creation and lookup."""

    def test_create_pair(self, client):
        response = client.post("/pairs", json={"tokenA": WETH, "tokenB": USDC})

        assert response.status_code == 201
        data = response.json()
        assert data["tokenLow"] == USDC
        assert data["tokenHigh"] == WETH
        assert data["reserveLow"] == "0"
        assert data["totalShares"] == "0"

    def test_duplicate_in_reverse_order(self, client):
        client.post("/pairs", json={"tokenA": WETH, "tokenB": USDC})
        response = client.post("/pairs", json={"tokenA": USDC, "tokenB": WETH_CHECKSUM})
        assert response.status_code == 409
        assert error_of(response) == "PairAlreadyExists"
        assert len(client.get("/pairs").json()) == 1

    def test_unregistered_token(self, client):
        response = client.post("/pairs", json={"tokenA": WETH, "tokenB": UNKNOWN})
        assert response.status_code == 404
        assert error_of(response) == "TokenNotRegistered"

    def test_identical_tokens(self, client):
        response = client.post("/pairs", json={"tokenA": WETH, "tokenB": WETH_CHECKSUM})
        assert response.status_code == 400
        assert error_of(response) == "IdenticalTokens"

    def test_get_pair_either_order(self, client):
        created = client.post("/pairs", json={"tokenA": WETH, "tokenB": USDC}).json()
        assert client.get(f"/pairs/{USDC}/{WETH}").json() == created
        assert client.get(f"/pairs/{WETH}/{USDC}").json() == created

    def test_get_missing_pair(self, client):
        response = client.get(f"/pairs/{WETH}/{DAI}")
        assert response.status_code == 404
        assert error_of(response) == "PairNotFound"


class TestTrading:
    """End-to-end liquidity, swap and reward flow."""

    def test_add_liquidity(self, client):
        client.post("/pairs", json={"tokenA": WETH, "tokenB": USDC})
        response = client.post(
            "/liquidity",
            json={"sender": ALICE, "tokenA": WETH, "tokenB": USDC, "desiredA": "1000", "desiredB": "4000"},
        )
        assert response.status_code == 200
        assert response.json() == {"amountA": "1000", "amountB": "4000", "sharesMinted": "2000"}

    def test_quote_and_swap(self, seeded):
        quote = seeded.get("/quote", params={"tokenIn": WETH, "tokenOut": USDC, "amountIn": 100})
        assert quote.json() == {"amount": "90"}

        response = seeded.post(
            "/swap", json={"sender": BOB, "amountIn": "100", "tokenIn": WETH, "tokenOut": USDC}
        )

        assert response.status_code == 200
        assert response.json() == {
            "amountIn": "100",
            "amountOut": "90",
            "tokenIn": WETH,
            "tokenOut": USDC,
        }
        pool = seeded.get(f"/pairs/{WETH}/{USDC}").json()
        assert pool["reserveLow"] == "910"
        assert pool["reserveHigh"] == "1100"

    def test_rewards(self, seeded):
        assert seeded.post("/blocks/advance", json={"blocks": 10}).json() == {"block": 110}

        pending = seeded.get(f"/rewards/{WETH}/{USDC}/{ALICE}")
        assert pending.json() == {"amount": "10000"}

        claimed = seeded.post("/rewards/claim", json={"sender": ALICE, "tokenA": USDC, "tokenB": WETH})
        assert claimed.json() == {"amount": "10000"}
        assert seeded.get(f"/ledger/{REWARD}/{ALICE}").json() == {"amount": "10000"}
        assert seeded.get(f"/rewards/{WETH}/{USDC}/{ALICE}").json() == {"amount": "0"}

    def test_sandbox_mint_and_approve(self, client):
        minted = client.post("/ledger/mint", json={"token": DAI, "recipient": CUSTODY, "amount": "5"})
        assert minted.json() == {"amount": "5"}

        approved = client.post("/ledger/approve", json={"token": DAI, "owner": BOB, "amount": "7"})
        assert approved.json() == {"amount": "7"}


class TestEngineGuard:
    """Read and sandbox routes run under the engine guard."""

    def test_routes_hold_guard(self, seeded, engine, monkeypatch):
        held = []
        original = engine.exclusive

        @contextmanager
        def recording():
            with original() as inner:
                held.append(engine._guard.locked)
                yield inner

        monkeypatch.setattr(engine, "exclusive", recording)

        for path in ("/tokens", "/pairs", f"/pairs/{WETH}/{USDC}", f"/ledger/{WETH}/{ALICE}"):
            assert seeded.get(path).status_code == 200
        seeded.post("/ledger/mint", json={"token": DAI, "recipient": BOB, "amount": "1"})
        seeded.post("/ledger/approve", json={"token": DAI, "owner": BOB, "amount": "1"})
        seeded.post("/blocks/advance", json={"blocks": 1})

        assert held == [True] * 7


class TestLoyalty:
    """Tests for the loyalty administration routes."""

    @pytest.fixture
    def loyalty_client(self, make_exchange) -> Iterator[TestClient]:
        engine = make_exchange(loyalty_owner=CAROL)
        app.dependency_overrides[get_exchange] = lambda: engine
        yield TestClient(app)
        app.dependency_overrides.clear()

    def test_status(self, loyalty_client):
        response = loyalty_client.get("/loyalty")
        assert response.status_code == 200
        assert response.json() == {"owner": CAROL, "transfersEnabled": False, "totalSupply": 0}

    def test_owner_toggles_transfers(self, loyalty_client):
        response = loyalty_client.post("/loyalty/transfers", json={"caller": CAROL, "enabled": True})
        assert response.status_code == 200
        assert response.json()["transfersEnabled"] is True
        assert loyalty_client.get("/loyalty").json()["transfersEnabled"] is True

    def test_non_owner_forbidden(self, loyalty_client):
        response = loyalty_client.post("/loyalty/transfers", json={"caller": BOB, "enabled": True})
        assert response.status_code == 403
        assert error_of(response) == "NotAuthorized"
        assert loyalty_client.get("/loyalty").json()["transfersEnabled"] is False

    def test_not_configured(self, client):
        assert client.get("/loyalty").status_code == 501
        response = client.post("/loyalty/transfers", json={"caller": CAROL, "enabled": True})
        assert response.status_code == 501


class TestErrorMapping:
    """Tests for engine error to HTTP status mapping."""

    def test_zero_input(self, seeded):
        response = seeded.post(
            "/swap", json={"sender": BOB, "amountIn": "0", "tokenIn": WETH, "tokenOut": USDC}
        )
        assert response.status_code == 400
        assert error_of(response) == "NonPositiveInput"

    def test_negative_amount_rejected_by_schema(self, seeded):
        response = seeded.post(
            "/swap", json={"sender": BOB, "amountIn": "-5", "tokenIn": WETH, "tokenOut": USDC}
        )
        assert response.status_code == 422

    def test_insufficient_output(self, seeded):
        response = seeded.post(
            "/swap", json={"sender": BOB, "amountIn": "1", "tokenIn": WETH, "tokenOut": USDC}
        )
        assert response.status_code == 400
        assert error_of(response) == "InsufficientOutput"

    def test_insufficient_allowance(self, seeded):
        seeded.post("/ledger/approve", json={"token": WETH, "owner": BOB, "amount": "0"})
        response = seeded.post(
            "/swap", json={"sender": BOB, "amountIn": "100", "tokenIn": WETH, "tokenOut": USDC}
        )
        assert response.status_code == 400
        assert error_of(response) == "InsufficientAllowance"
        # Nothing moved
        assert seeded.get(f"/pairs/{WETH}/{USDC}").json()["reserveHigh"] == "1000"

    def test_overflow_is_server_error(self, client):
        """An initial deposit whose product exceeds uint256."""
        client.post("/pairs", json={"tokenA": WETH, "tokenB": USDC})
        response = client.post(
            "/liquidity",
            json={
                "sender": BOB,
                "tokenA": WETH,
                "tokenB": USDC,
                "desiredA": str(2**200),
                "desiredB": str(2**200),
            },
        )
        assert response.status_code == 500
        assert error_of(response) == "ArithmeticOverflow"

    def test_frozen_clock_cannot_advance(self, config):
        class FrozenClock:
            def current_block(self) -> int:
                return 7

        engine = Exchange(ledger=InMemoryLedger(custody=CUSTODY), config=config, clock=FrozenClock())
        app.dependency_overrides[get_exchange] = lambda: engine
        try:
            response = TestClient(app).post("/blocks/advance", json={"blocks": 1})
            assert response.status_code == 501
        finally:
            app.dependency_overrides.clear()

    @pytest.mark.parametrize(
        "error, status",
        [
            (PairNotFound("x"), 404),
            (PairAlreadyExists("x"), 409),
            (ReentrancyError("x"), 409),
            (NotAuthorized("x"), 403),
            (InsufficientOutput("x"), 400),
            (RewardAccountingError("x"), 500),
            (ArithmeticOverflow("x"), 500),
        ],
    )
    def test_status_for(self, error, status):
        assert status_for(error) == status
