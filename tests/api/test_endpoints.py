"""Tests for API endpoints."""

import hashlib
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from api.main import app
from api.routes import rounds
from fairjack.errors import RoundNotFound
from fairjack.game import Table


@pytest_asyncio.fixture
async def client():
    """Create test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def open_round(client, bets=(10,)):
    """Start a round and return its response body."""
    response = await client.post("/api/rounds", json={"bets": list(bets)})
    assert response.status_code == 200
    return response.json()


def token_header(started):
    return {"X-Round-Token": started["round_token"]}


async def play_round(client, started):
    """Deal and stand on every hand; return the final state and the action log."""
    headers = token_header(started)
    state = (await client.post("/api/rounds/deal", headers=headers)).json()
    actions = []
    while state["phase"] == "PLAYER_TURN":
        entry = {
            "action": "stand",
            "turn": state["turn"],
            "hand_index": state["current_hand_index"],
        }
        response = await client.post("/api/rounds/action", json=entry, headers=headers)
        assert response.status_code == 200
        actions.append(entry)
        state = response.json()
    return state, actions


@pytest.mark.asyncio
async def test_health_check(client):
    """Test health check endpoint."""
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_start_round(client):
    """Test opening a round publishes commitments."""
    data = await open_round(client)
    assert len(bytes.fromhex(data["commitment"])) == 32
    assert len(bytes.fromhex(data["dealer_commitment"])) == 32
    assert len(bytes.fromhex(data["player_pubkey"])) == 32
    assert data["round_token"]


@pytest.mark.asyncio
async def test_start_round_rejects_bad_bets(client):
    """Test bet validation."""
    response = await client.post("/api/rounds", json={"bets": []})
    assert response.status_code == 422
    response = await client.post("/api/rounds", json={"bets": [100000]})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_start_round_with_client_seed(client):
    """Test a client-chosen seed and key are committed to and revealed back."""
    player_seed, player_pubkey = "ab" * 16, "cd" * 32
    response = await client.post(
        "/api/rounds",
        json={"bets": [10], "player_seed": player_seed, "player_pubkey": player_pubkey},
    )
    assert response.status_code == 200
    started = response.json()
    assert started["commitment"] == hashlib.sha256(bytes.fromhex(player_seed)).hexdigest()
    assert started["player_pubkey"] == player_pubkey

    state, _ = await play_round(client, started)
    assert state["phase"] == "SETTLED"
    response = await client.post("/api/rounds/reveal", headers=token_header(started))
    assert response.json()["player_seed"] == player_seed


@pytest.mark.asyncio
async def test_start_round_rejects_bad_client_seed(client):
    """Test a client seed must be hex of the right length."""
    response = await client.post("/api/rounds", json={"bets": [10], "player_seed": "zz"})
    assert response.status_code == 422
    response = await client.post("/api/rounds", json={"bets": [10], "player_seed": "ab"})
    assert response.status_code == 400
    response = await client.post("/api/rounds", json={"bets": [10], "player_pubkey": "ab"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_state_before_deal(client):
    """Test a fresh round is committed with no cards."""
    started = await open_round(client)
    response = await client.get("/api/rounds/state", headers=token_header(started))
    assert response.status_code == 200
    data = response.json()
    assert data["phase"] == "COMMITTED"
    assert data["dealer_cards"] == []
    assert data["legal_actions"] == {
        "can_hit": False,
        "can_stand": False,
        "can_double": False,
        "can_split": False,
    }


@pytest.mark.asyncio
async def test_unknown_token(client):
    """Test a forged token is a 404."""
    response = await client.get("/api/rounds/state", headers={"X-Round-Token": "forged"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_missing_token(client):
    """Test the token header is required."""
    response = await client.get("/api/rounds/state")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_deal(client):
    """Test dealing hides the hole card while the player acts."""
    started = await open_round(client, bets=(10, 10))
    response = await client.post("/api/rounds/deal", headers=token_header(started))
    assert response.status_code == 200
    data = response.json()
    assert len(data["player_hands"]) >= 2
    if data["phase"] == "PLAYER_TURN":
        assert data["dealer_cards"][1]["hidden"] is True
        assert data["current_hand_index"] is not None
    else:
        assert data["phase"] == "SETTLED"


@pytest.mark.asyncio
async def test_deal_twice_is_illegal(client):
    """Test a second deal is rejected with the round state."""
    started = await open_round(client)
    headers = token_header(started)
    await client.post("/api/rounds/deal", headers=headers)
    response = await client.post("/api/rounds/deal", headers=headers)
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["kind"] == "ILLEGAL_ACTION"
    assert detail["state"]["phase"] in ("PLAYER_TURN", "SETTLED")


@pytest.mark.asyncio
async def test_deal_with_wrong_dealer_seed(client):
    """Test a dealer seed that misses its commitment disputes the round."""
    started = await open_round(client)
    headers = token_header(started)
    response = await client.post(
        "/api/rounds/deal", json={"dealer_seed": "00" * 16}, headers=headers
    )
    assert response.status_code == 422
    assert response.json()["detail"]["kind"] == "COMMITMENT_MISMATCH"

    state = (await client.get("/api/rounds/state", headers=headers)).json()
    assert state["phase"] == "DISPUTED"


@pytest.mark.asyncio
async def test_deal_with_malformed_seed(client):
    """Test a non-hex dealer seed is a validation error."""
    started = await open_round(client)
    response = await client.post(
        "/api/rounds/deal", json={"dealer_seed": "zz"}, headers=token_header(started)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_stale_action(client):
    """Test a wrong turn counter is a 409 with the current state."""
    started = await open_round(client)
    headers = token_header(started)
    await client.post("/api/rounds/deal", headers=headers)
    response = await client.post(
        "/api/rounds/action", json={"action": "hit", "turn": 99}, headers=headers
    )
    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["kind"] == "STALE_ACTION"
    assert detail["state"]["turn"] == 0


@pytest.mark.asyncio
async def test_illegal_action_after_settle(client):
    """Test acting on a settled round is a 400."""
    started = await open_round(client)
    state, _ = await play_round(client, started)
    assert state["phase"] == "SETTLED"
    response = await client.post(
        "/api/rounds/action",
        json={"action": "hit", "turn": state["turn"]},
        headers=token_header(started),
    )
    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "ILLEGAL_ACTION"


@pytest.mark.asyncio
async def test_unknown_action_name(client):
    """Test the action name is validated by the schema."""
    started = await open_round(client)
    response = await client.post(
        "/api/rounds/action",
        json={"action": "surrender", "turn": 0},
        headers=token_header(started),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_reveal_before_end(client):
    """Test seeds stay secret before the round ends."""
    started = await open_round(client)
    response = await client.post("/api/rounds/reveal", headers=token_header(started))
    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "ILLEGAL_ACTION"


@pytest.mark.asyncio
async def test_full_round_reveal_and_verify(client):
    """Test a settled round's revealed seeds verify by replay."""
    started = await open_round(client, bets=(10, 25))
    state, actions = await play_round(client, started)
    assert state["phase"] == "SETTLED"
    assert len(state["payouts"]) == len(state["player_hands"])

    response = await client.post("/api/rounds/reveal", headers=token_header(started))
    assert response.status_code == 200
    revealed = response.json()
    player_seed = bytes.fromhex(revealed["player_seed"])
    dealer_seed = bytes.fromhex(revealed["dealer_seed"])
    assert hashlib.sha256(player_seed).hexdigest() == started["commitment"]
    assert hashlib.sha256(dealer_seed).hexdigest() == started["dealer_commitment"]

    claim = {
        "round_id": started["round_id"],
        "player_seed": revealed["player_seed"],
        "dealer_seed": revealed["dealer_seed"],
        "player_commitment": started["commitment"],
        "dealer_commitment": started["dealer_commitment"],
        "player_pubkey": started["player_pubkey"],
        "bets": ["10", "25"],
        "actions": actions,
        "payouts": state["payouts"],
    }
    response = await client.post("/api/verify", json=claim)
    assert response.status_code == 200
    verdict = response.json()
    assert verdict["valid"] is True
    assert verdict["state"]["payouts"] == state["payouts"]

    tampered = {**claim, "dealer_seed": "00" * 16}
    verdict = (await client.post("/api/verify", json=tampered)).json()
    assert verdict["valid"] is False
    assert verdict["kind"] == "COMMITMENT_MISMATCH"

    inflated = {**claim, "payouts": ["1000"] * len(state["payouts"])}
    verdict = (await client.post("/api/verify", json=inflated)).json()
    assert verdict["valid"] is False
    assert verdict["kind"] == "REPLAY_MISMATCH"


@pytest.mark.asyncio
async def test_verify_rejects_malformed_hex(client):
    """Test non-hex seeds are a validation error."""
    response = await client.post(
        "/api/verify",
        json={
            "player_seed": "zz",
            "dealer_seed": "00",
            "player_commitment": "00",
            "dealer_commitment": "00",
            "player_pubkey": "00",
            "bets": ["10"],
        },
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_discard_round(client):
    """Test a discarded round is gone."""
    started = await open_round(client)
    headers = token_header(started)
    response = await client.delete("/api/rounds", headers=headers)
    assert response.status_code == 200
    response = await client.get("/api/rounds/state", headers=headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_expired_rounds_dropped_on_start(client, monkeypatch):
    """Test opening a round clears rounds older than the TTL."""
    table = Table(round_ttl=60)
    monkeypatch.setattr(rounds, "_table", table)

    old = await open_round(client)
    game_round, _ = table._rounds[old["round_id"]]
    table._rounds[old["round_id"]] = (game_round, datetime.now() - timedelta(minutes=5))

    fresh = await open_round(client)
    assert old["round_id"] not in table
    assert fresh["round_id"] in table
    with pytest.raises(RoundNotFound):
        table.dealer.seed_for(old["round_id"])

    response = await client.get("/api/rounds/state", headers=token_header(old))
    assert response.status_code == 404
