from __future__ import annotations

import pytest

from camstream.exceptions import SessionMismatch, TokenExpired, TokenForged, TokenMalformed
from camstream.tokens import CapabilityToken, TokenCodec, TokenStatus

SESSION = "cam-0-0123456789abcdef01234567"
OTHER_SESSION = "cam-0-fedcba9876543210fedcba98"


def test_issue_binds_session_and_absolute_expiry(codec: TokenCodec, clock) -> None:
    token = codec.issue(SESSION, 300)

    assert token.session_id == SESSION
    assert token.expires == int(clock.now) + 300
    assert len(token.signature) == 64


def test_signature_is_deterministic_for_identical_inputs(clock) -> None:
    first = TokenCodec("shared", clock=clock).issue(SESSION, 60)
    second = TokenCodec("shared", clock=clock).issue(SESSION, 60)
    other_secret = TokenCodec("different", clock=clock).issue(SESSION, 60)

    assert first == second
    assert first.signature != other_secret.signature


def test_expiry_boundary_is_inclusive(codec: TokenCodec, clock) -> None:
    params = codec.issue(SESSION, 300).to_query()

    clock.advance(299)
    assert codec.verify(params, SESSION) is TokenStatus.OK
    clock.advance(1)
    assert codec.verify(params, SESSION) is TokenStatus.OK
    clock.advance(1)
    assert codec.verify(params, SESSION) is TokenStatus.EXPIRED


def test_token_for_one_session_is_rejected_for_another(codec: TokenCodec) -> None:
    params = codec.issue(SESSION, 300).to_query()

    assert codec.verify(params, OTHER_SESSION) is TokenStatus.SESSION_MISMATCH
    with pytest.raises(SessionMismatch):
        codec.require(params, OTHER_SESSION)


def test_tampered_fields_are_forged(codec: TokenCodec) -> None:
    params = codec.issue(SESSION, 300).to_query()

    extended = dict(params, expires=str(int(params["expires"]) + 3600))
    assert codec.verify(extended, SESSION) is TokenStatus.FORGED

    swapped = dict(params, sid=OTHER_SESSION)
    assert codec.verify(swapped, OTHER_SESSION) is TokenStatus.FORGED

    flipped = params["signature"][:-1] + ("0" if params["signature"][-1] != "0" else "1")
    with pytest.raises(TokenForged):
        codec.require(dict(params, signature=flipped), SESSION)


def test_token_from_another_secret_is_forged(clock) -> None:
    foreign = TokenCodec("someone-else", clock=clock).issue(SESSION, 300).to_query()
    codec = TokenCodec("unit-test-secret", clock=clock)

    assert codec.verify(foreign, SESSION) is TokenStatus.FORGED


@pytest.mark.parametrize(
    "mutation",
    [
        {"sid": None},
        {"expires": None},
        {"signature": None},
        {"expires": "soon"},
        {"expires": "-5"},
        {"signature": "abc"},
        {"signature": "Z" * 64},
        {"sid": "../etc"},
        {"expires": "100\n"},
    ],
)
def test_structurally_invalid_tokens_are_malformed(codec: TokenCodec, mutation) -> None:
    params = dict(codec.issue(SESSION, 300).to_query())
    for key, value in mutation.items():
        if value is None:
            params.pop(key)
        else:
            params[key] = value

    assert codec.verify(params, SESSION) is TokenStatus.MALFORMED
    with pytest.raises(TokenMalformed):
        codec.require(params, SESSION)


def test_require_raises_for_expired_token(codec: TokenCodec, clock) -> None:
    issued = codec.issue(SESSION, 30)
    clock.advance(31)

    with pytest.raises(TokenExpired):
        codec.require(issued.to_query(), SESSION)


def test_require_returns_token_when_valid(codec: TokenCodec) -> None:
    issued = codec.issue(SESSION, 30)

    assert codec.require(issued.to_query(), SESSION) == issued


def test_from_query_round_trip(codec: TokenCodec) -> None:
    token = codec.issue(SESSION, 10)

    assert CapabilityToken.from_query(token.to_query()) == token


def test_issue_rejects_bad_arguments(codec: TokenCodec) -> None:
    with pytest.raises(ValueError):
        codec.issue("../escape", 10)
    with pytest.raises(ValueError):
        codec.issue(SESSION, 0)
    with pytest.raises(ValueError):
        TokenCodec("")
