"""Stateless fairness verification endpoint."""

from decimal import Decimal

from fastapi import APIRouter, HTTPException

from api.schemas import RoundStateResponse, VerifyRequest, VerifyResponse
from config import config
from fairjack.errors import IntegrityError, RoundError
from fairjack.game import Action, RoundRecord, verify_record
from fairjack.game.snapshot import ActionRecord

router = APIRouter()


def _hex(value: str, name: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"{name} must be hex") from None


def _record_from_request(request: VerifyRequest) -> RoundRecord:
    return RoundRecord(
        round_id=request.round_id,
        player_seed=_hex(request.player_seed, "player_seed"),
        dealer_seed=_hex(request.dealer_seed, "dealer_seed"),
        player_commitment=_hex(request.player_commitment, "player_commitment"),
        dealer_commitment=_hex(request.dealer_commitment, "dealer_commitment"),
        player_pubkey=_hex(request.player_pubkey, "player_pubkey"),
        bets=tuple(Decimal(b) for b in request.bets),
        actions=tuple(
            ActionRecord(turn=a.turn, hand_index=a.hand_index, action=Action(a.action))
            for a in request.actions
        ),
        payouts=tuple(request.payouts) if request.payouts is not None else None,
        rules=config.game.rules(),
    )


@router.post("")
async def verify_round(request: VerifyRequest) -> VerifyResponse:
    """
    Replay a revealed round and check it against its commitments.

    An integrity failure is a verdict, not a request error, so it is
    returned with valid=False rather than as an HTTP error.
    """
    record = _record_from_request(request)
    try:
        snapshot = verify_record(record)
    except IntegrityError as exc:
        state = RoundStateResponse.from_snapshot(exc.snapshot) if exc.snapshot else None
        return VerifyResponse(valid=False, kind=exc.kind.value, message=exc.message, state=state)
    except RoundError as exc:
        # Log does not replay: wrong turn order or an action that was never legal
        return VerifyResponse(valid=False, kind=exc.kind.value, message=exc.message)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    if snapshot.payouts is None:
        return VerifyResponse(
            valid=False,
            message="Action log ends before the round settles",
            state=RoundStateResponse.from_snapshot(snapshot),
        )
    return VerifyResponse(valid=True, state=RoundStateResponse.from_snapshot(snapshot))
