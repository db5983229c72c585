"""Unit tests for password hashing and the session token codec."""

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt
from task_tracker.auth import (
    TokenCodec,
    TokenError,
    hash_password,
    token_codec,
    verify_password,
)
from task_tracker.config import settings


def _b64(data: dict) -> str:
    raw = json.dumps(data).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


# ==================== Password Hashing ====================

class TestPasswordHashing:

    def test_hash_is_not_plaintext(self):
        digest = hash_password("password123")
        assert digest != "password123"
        assert digest.startswith("$2")

    def test_salt_differs_per_call(self):
        """Same password hashed twice yields different digests."""
        assert hash_password("password123") != hash_password("password123")

    def test_verify_correct_password(self):
        digest = hash_password("password123")
        assert verify_password("password123", digest) is True

    def test_verify_wrong_password(self):
        digest = hash_password("password123")
        assert verify_password("password124", digest) is False

    def test_verify_malformed_digest_is_false(self):
        """A stored value that is not a bcrypt hash is a mismatch, not an error."""
        assert verify_password("password123", "not-a-bcrypt-hash") is False

    def test_long_password_supported(self):
        password = "p" * 200
        digest = hash_password(password)
        assert verify_password(password, digest) is True

    def test_unicode_password(self):
        digest = hash_password("pässwörd-🔑")
        assert verify_password("pässwörd-🔑", digest) is True
        assert verify_password("passwORD-🔑", digest) is False


# ==================== Token Codec ====================

class TestTokenCodec:

    def test_issue_and_verify_round_trip(self):
        token = token_codec.issue(42)
        assert token_codec.verify(token) == 42

    def test_default_ttl_is_24_hours(self):
        assert token_codec.ttl == timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)
        assert settings.JWT_EXPIRATION_MINUTES == 24 * 60

    def test_payload_carries_subject_and_timestamps(self):
        token = token_codec.issue(7)
        payload = jwt.get_unverified_claims(token)
        assert payload["sub"] == "7"
        assert payload["exp"] - payload["iat"] == 24 * 60 * 60

    def test_expired_token_rejected(self):
        token = token_codec.issue(42, ttl=timedelta(seconds=-1))
        with pytest.raises(TokenError, match="expired"):
            token_codec.verify(token)

    def test_wrong_secret_rejected(self):
        other = TokenCodec("another-secret-key-that-is-long-enough-too")
        token = other.issue(42)
        with pytest.raises(TokenError, match="Token validation failed"):
            token_codec.verify(token)

    def test_tampered_payload_rejected(self):
        """Swapping the payload while keeping the signature fails verification."""
        header, _, signature = token_codec.issue(1).split(".")
        forged_payload = _b64({
            "sub": "2",
            "iat": int(datetime.now(timezone.utc).timestamp()),
            "exp": int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp()),
        })
        forged = f"{header}.{forged_payload}.{signature}"
        with pytest.raises(TokenError):
            token_codec.verify(forged)

    def test_unsigned_token_rejected(self):
        header = _b64({"alg": "none", "typ": "JWT"})
        payload = _b64({"sub": "1"})
        with pytest.raises(TokenError):
            token_codec.verify(f"{header}.{payload}.")

    @pytest.mark.parametrize("token", ["", "garbage", "not.a.valid.token"])
    def test_malformed_token_rejected(self, token):
        with pytest.raises(TokenError):
            token_codec.verify(token)

    def test_missing_subject_rejected(self):
        token = jwt.encode(
            {"exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )
        with pytest.raises(TokenError, match=r"Missing subject \(sub\)"):
            token_codec.verify(token)

    def test_non_numeric_subject_rejected(self):
        token = jwt.encode(
            {"sub": "alice", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
        )
        with pytest.raises(TokenError, match="not a user id"):
            token_codec.verify(token)
