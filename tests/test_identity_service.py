from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from src.config.auth_config import AuthConfig
from src.models.enums import UserRole
from src.models.identity import CallerIdentity
from src.services.identity_service import IdentityVerifier
from src.utils.error_handler import InvalidCredential


def _sign(claims: dict, secret: str = "test-secret") -> str:
    return jwt.encode(claims, secret, algorithm="HS256")


def test_issued_token_round_trips_identity(verifier, identity) -> None:
    token = verifier.issue(identity)

    assert verifier.verify(token) == identity


def test_verify_reads_login_token_claims(verifier) -> None:
    exp = datetime.now(timezone.utc) + timedelta(minutes=5)
    token = _sign({"userId": "u-7", "email": "s@example.com", "role": "seller", "exp": exp})

    identity = verifier.verify(token)

    assert identity == CallerIdentity(user_id="u-7", role=UserRole.SELLER, email="s@example.com")


def test_missing_role_defaults_to_user(verifier) -> None:
    identity = verifier.verify(_sign({"userId": 12}))

    assert identity.user_id == "12"
    assert identity.role is UserRole.USER


@pytest.mark.parametrize("credential", [None, ""])
def test_missing_credential_is_rejected(verifier, credential) -> None:
    with pytest.raises(InvalidCredential, match="Missing authentication token"):
        verifier.verify(credential)


@pytest.mark.parametrize(
    "credential",
    [
        "not-a-jwt",
        "a.b.c",
        _sign({"userId": "u-1"}, secret="another-secret"),
    ],
)
def test_malformed_or_forged_tokens_are_rejected(verifier, credential) -> None:
    with pytest.raises(InvalidCredential, match="Invalid or expired token"):
        verifier.verify(credential)


def test_expired_token_is_rejected(verifier, identity) -> None:
    token = verifier.issue(identity, expires_in=-60)

    with pytest.raises(InvalidCredential) as info:
        verifier.verify(token)

    assert info.value.status_code == 401


def test_leeway_accepts_recently_expired_token(identity) -> None:
    verifier = IdentityVerifier(secret="test-secret", leeway=120)
    token = verifier.issue(identity, expires_in=-60)

    assert verifier.verify(token).user_id == identity.user_id


@pytest.mark.parametrize(
    "claims",
    [
        {"email": "nobody@example.com"},
        {"userId": ""},
        {"userId": "u-1", "role": "superuser"},
    ],
)
def test_token_payload_must_name_a_known_user(verifier, claims) -> None:
    with pytest.raises(InvalidCredential, match="Invalid token payload"):
        verifier.verify(_sign(claims))


def test_verifier_built_from_config() -> None:
    config = AuthConfig(JWT_SECRET="config-secret", JWT_ALGORITHM="hs512", JWT_EXPIRES_IN=60)
    verifier = IdentityVerifier.from_config(config)
    identity = CallerIdentity(user_id="u-1")

    token = verifier.issue(identity)

    assert jwt.get_unverified_header(token)["alg"] == "HS512"
    assert verifier.verify(token) == identity
    with pytest.raises(InvalidCredential):
        IdentityVerifier(secret="test-secret").verify(token)
