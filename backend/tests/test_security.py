"""Tests for password hashing and access tokens."""

from datetime import timedelta

import jwt

from auctionhouse.core.config import settings
from auctionhouse.core.security import (
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = get_password_hash("correct horse")

        assert hashed != "correct horse"
        assert verify_password("correct horse", hashed)
        assert not verify_password("wrong horse", hashed)

    def test_phone_only_account_never_matches(self):
        assert not verify_password("anything", None)
        assert not verify_password("anything", "")

    def test_malformed_hash_does_not_match(self):
        assert not verify_password("anything", "not-a-bcrypt-hash")


class TestTokens:

    def test_round_trip(self):
        token = create_access_token({"sub": "user-1"})

        payload = decode_access_token(token)

        assert payload["sub"] == "user-1"
        assert "exp" in payload

    def test_expired_token(self):
        token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-10))

        assert decode_access_token(token) is None

    def test_token_signed_with_other_key(self):
        token = jwt.encode(
            {"sub": "user-1"}, "some-other-secret-key-32-bytes-long!", algorithm=settings.JWT_ALGORITHM
        )

        assert decode_access_token(token) is None

    def test_garbage(self):
        assert decode_access_token("not.a.token") is None
