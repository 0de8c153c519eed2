"""Round API endpoints."""

import logging
from typing import Annotated, NoReturn

from fastapi import APIRouter, Header, HTTPException

from api.schemas import (
    ActionRequest,
    DealRequest,
    ErrorDetail,
    RevealResponse,
    RoundStateResponse,
    StartRoundRequest,
    StartRoundResponse,
)
from api.tokens import extract_round_id, issue_round_token
from config import config
from fairjack.errors import ErrorKind, RoundError
from fairjack.game import Table

logger = logging.getLogger(__name__)

router = APIRouter()

# Process-wide table; rounds live in memory only
_table: Table | None = None

# HTTP status per error kind
ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.ILLEGAL_ACTION: 400,
    ErrorKind.STALE_ACTION: 409,
    ErrorKind.COMMITMENT_MISMATCH: 422,
    ErrorKind.REPLAY_MISMATCH: 422,
    ErrorKind.DECK_EXHAUSTED: 500,
}


def get_table() -> Table:
    """Get or create the table."""
    global _table
    if _table is None:
        _table = Table(
            rules=config.game.rules(),
            min_bet=config.game.min_bet,
            max_bet=config.game.max_bet,
            round_ttl=config.round_ttl,
        )
    return _table


def _round_id(token: str) -> str:
    """Resolve a signed round token, or 404."""
    round_id = extract_round_id(token)
    if round_id is None or round_id not in get_table():
        raise HTTPException(status_code=404, detail="Unknown or expired round")
    return round_id


def _decode_hex(value: str, name: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"{name} must be hex") from None


def _reject(exc: RoundError) -> NoReturn:
    """Turn a round error into an HTTP error carrying the current state."""
    state = RoundStateResponse.from_snapshot(exc.snapshot) if exc.snapshot else None
    detail = ErrorDetail(kind=exc.kind.value, message=exc.message, state=state)
    if exc.kind in (ErrorKind.COMMITMENT_MISMATCH, ErrorKind.DECK_EXHAUSTED):
        logger.warning("Round rejected with %s: %s", exc.kind, exc.message)
    raise HTTPException(
        status_code=ERROR_STATUS[exc.kind],
        detail=detail.model_dump(mode="json"),
    ) from exc


@router.post("")
async def start_round(request: StartRoundRequest) -> StartRoundResponse:
    """Open a round and publish both commitments."""
    table = get_table()
    expired = table.cleanup_expired()
    if expired:
        logger.info("Dropped %d expired round(s)", expired)

    player_seed = None
    if request.player_seed is not None:
        player_seed = _decode_hex(request.player_seed, "player_seed")
    player_pubkey = None
    if request.player_pubkey is not None:
        player_pubkey = _decode_hex(request.player_pubkey, "player_pubkey")
    try:
        commitment, round_id = table.start_round(
            request.bets,
            player_seed=player_seed,
            player_pubkey=player_pubkey,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    _, dealer_commitment = table.commitments(round_id)
    return StartRoundResponse(
        round_token=issue_round_token(round_id),
        round_id=round_id,
        commitment=commitment.hex(),
        dealer_commitment=dealer_commitment.hex(),
        player_pubkey=table.get(round_id).player_pubkey.hex(),
    )


@router.post("/deal")
async def deal(
    round_token: Annotated[str, Header(alias="X-Round-Token")],
    request: DealRequest | None = None,
) -> RoundStateResponse:
    """Deal the opening hands."""
    round_id = _round_id(round_token)
    dealer_seed = None
    if request is not None and request.dealer_seed is not None:
        dealer_seed = _decode_hex(request.dealer_seed, "dealer_seed")
    try:
        snapshot = get_table().deal(round_id, dealer_seed)
    except RoundError as exc:
        _reject(exc)
    return RoundStateResponse.from_snapshot(snapshot)


@router.get("/state")
async def get_state(
    round_token: Annotated[str, Header(alias="X-Round-Token")],
) -> RoundStateResponse:
    """Get current round state."""
    round_id = _round_id(round_token)
    return RoundStateResponse.from_snapshot(get_table().snapshot(round_id))


@router.post("/action")
async def player_action(
    request: ActionRequest,
    round_token: Annotated[str, Header(alias="X-Round-Token")],
) -> RoundStateResponse:
    """Execute a player action."""
    round_id = _round_id(round_token)
    try:
        snapshot, _ = get_table().submit_action(
            round_id,
            request.action,
            request.turn,
            hand_index=request.hand_index,
        )
    except RoundError as exc:
        _reject(exc)
    return RoundStateResponse.from_snapshot(snapshot)


@router.post("/reveal")
async def reveal(
    round_token: Annotated[str, Header(alias="X-Round-Token")],
) -> RevealResponse:
    """Reveal both seeds after the round has ended."""
    round_id = _round_id(round_token)
    table = get_table()
    try:
        player_seed, dealer_seed = table.reveal(round_id)
    except RoundError as exc:
        _reject(exc)

    player_commitment, dealer_commitment = table.commitments(round_id)
    return RevealResponse(
        player_seed=player_seed.hex(),
        dealer_seed=dealer_seed.hex(),
        player_commitment=player_commitment.hex(),
        dealer_commitment=dealer_commitment.hex(),
    )


@router.delete("")
async def discard_round(
    round_token: Annotated[str, Header(alias="X-Round-Token")],
) -> dict[str, str]:
    """Forget a round."""
    round_id = _round_id(round_token)
    get_table().discard(round_id)
    logger.info("Round %s discarded", round_id)
    return {"status": "discarded"}
