import base64
import json

import jwt
import pytest

from session.errors import MalformedToken
from session.jwt_utils import get_token_expiry, get_token_subject, parse_jwt_claims
from tests.fakes import JWT_SECRET, NOW, make_token


def _unsigned(payload) -> str:
    body = base64.urlsafe_b64encode(json.dumps(payload).encode()).rstrip(b"=").decode()
    return f"eyJhbGciOiJub25lIn0.{body}.sig"


def test_parse_claims_without_verifying_signature():
    token = jwt.encode({"sub": "user-1", "exp": 123}, "some-other-secret", algorithm="HS256")

    claims = parse_jwt_claims(token)

    assert claims == {"sub": "user-1", "exp": 123}


@pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b", "a.!!!.c", "a.b.c.d"])
def test_parse_claims_returns_none_for_garbage(token):
    assert parse_jwt_claims(token) is None


def test_parse_claims_rejects_non_object_payload():
    assert parse_jwt_claims(_unsigned([1, 2, 3])) is None


def test_get_token_expiry_reads_exp():
    token = make_token(3600)

    assert get_token_expiry(token) == NOW + 3600


def test_get_token_expiry_accepts_float_exp():
    assert get_token_expiry(_unsigned({"exp": 1700000000.5})) == 1700000000.5


@pytest.mark.parametrize("payload", [{"sub": "user-1"}, {"exp": "soon"}, {"exp": True}, {"exp": None}])
def test_get_token_expiry_without_numeric_exp_is_malformed(payload):
    with pytest.raises(MalformedToken):
        get_token_expiry(_unsigned(payload))


def test_get_token_expiry_undecodable_is_malformed():
    with pytest.raises(MalformedToken):
        get_token_expiry("opaque-token")


def test_get_token_subject_prefers_sub():
    assert get_token_subject(jwt.encode({"sub": "u1", "userId": "u2"}, JWT_SECRET, algorithm="HS256")) == "u1"


def test_get_token_subject_falls_back_to_user_id():
    assert get_token_subject(_unsigned({"userId": 42})) == "42"


def test_get_token_subject_missing():
    assert get_token_subject("garbage") is None
