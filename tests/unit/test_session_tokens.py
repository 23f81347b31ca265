import time

import pytest

from foodcourt.auth.tokens import SessionTokenError, decode_session_token, issue_session_token

SECRET = "s" * 32


def test_round_trip_preserves_claims():
    token = issue_session_token({"adminId": "abc", "username": "admin"}, SECRET, 60)

    payload = decode_session_token(token, SECRET)

    assert payload["adminId"] == "abc"
    assert payload["username"] == "admin"
    assert payload["exp"] >= int(time.time())


def test_rejects_token_signed_with_other_secret():
    token = issue_session_token({"adminId": "abc"}, "other-secret", 60)

    with pytest.raises(SessionTokenError, match="signature"):
        decode_session_token(token, SECRET)


def test_rejects_expired_token():
    token = issue_session_token({"adminId": "abc"}, SECRET, -10)

    with pytest.raises(SessionTokenError, match="Expired"):
        decode_session_token(token, SECRET)


@pytest.mark.parametrize("token", ["", "not-a-token", "a.b"])
def test_rejects_malformed_token(token):
    with pytest.raises(SessionTokenError):
        decode_session_token(token, SECRET)


def test_rejects_tampered_payload():
    token = issue_session_token({"adminId": "abc"}, SECRET, 60)
    header, _payload, signature = token.split(".")
    forged = issue_session_token({"adminId": "root"}, SECRET, 60).split(".")[1]

    with pytest.raises(SessionTokenError):
        decode_session_token(f"{header}.{forged}.{signature}", SECRET)
