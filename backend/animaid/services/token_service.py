# Overview: Issues and verifies signed bearer tokens (JWT, HS256).

"""
Token Codec

Tokens are self-contained HS256 JWTs. Nothing about them is stored except
revocations (see revocation_service.py), which are keyed by the jti claim.

CLAIMS:
- iss, aud: fixed per deployment, checked on every verify
- iat, exp: integer epoch seconds; exp = iat + configured TTL
- jti: random identifier used by the revocation ledger
- user_id, username: identity at issuance
- roles: role-name snapshot at issuance (not refreshed until reissue)

Time checks run against the injected clock rather than PyJWT's own, so a
token is expired only when now > exp, and rejected when now < iat.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

import jwt

from ..errors import InvalidToken, TokenExpired
from ..time_utils import Clock, from_epoch, to_epoch, utcnow


ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["iss", "aud", "iat", "exp", "jti", "user_id", "username", "roles"]


@dataclass(frozen=True)
class TokenClaims:
    issuer: str
    audience: str
    issued_at: int
    expires_at: int
    jti: str
    user_id: int
    username: str
    roles: tuple[str, ...]

    @property
    def expires_at_datetime(self) -> datetime:
        return from_epoch(self.expires_at)

    def to_payload(self) -> dict:
        return {
            "iss": self.issuer,
            "aud": self.audience,
            "iat": self.issued_at,
            "exp": self.expires_at,
            "jti": self.jti,
            "user_id": self.user_id,
            "username": self.username,
            "roles": list(self.roles),
        }


@dataclass(frozen=True)
class IssuedToken:
    token: str
    claims: TokenClaims


class TokenCodec:
    def __init__(self, secret: str, issuer: str, audience: str, clock: Clock = utcnow):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self.issuer = issuer
        self.audience = audience
        self._clock = clock

    def issue(self, user_id: int, username: str, role_names, ttl: timedelta) -> IssuedToken:
        """Mint a signed token for the given identity and role snapshot."""
        issued_at = to_epoch(self._clock())
        claims = TokenClaims(
            issuer=self.issuer,
            audience=self.audience,
            issued_at=issued_at,
            expires_at=issued_at + int(ttl.total_seconds()),
            jti=secrets.token_hex(16),
            user_id=int(user_id),
            username=username,
            roles=tuple(role_names),
        )
        token = jwt.encode(claims.to_payload(), self._secret, algorithm=ALGORITHM)
        return IssuedToken(token=token, claims=claims)

    def verify(self, token: str, *, allow_expired: bool = False) -> TokenClaims:
        """
        Verify signature, issuer, audience and timestamps; return the claims.

        Raises TokenExpired when now > exp (unless allow_expired), and
        InvalidToken for anything else wrong with the token.
        """
        if not token or not isinstance(token, str):
            raise InvalidToken("Empty token")

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
                options={
                    "require": REQUIRED_CLAIMS,
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except jwt.InvalidTokenError as e:
            raise InvalidToken(f"Token rejected: {e}") from e

        claims = self._claims_from_payload(payload)

        now = to_epoch(self._clock())
        if now < claims.issued_at:
            raise InvalidToken("Token issued in the future")
        if not allow_expired and now > claims.expires_at:
            raise TokenExpired("Token has expired")

        return claims

    @staticmethod
    def _claims_from_payload(payload: dict) -> TokenClaims:
        iat = payload.get("iat")
        exp = payload.get("exp")
        user_id = payload.get("user_id")
        username = payload.get("username")
        roles = payload.get("roles")
        jti = payload.get("jti")

        for name, value in (("iat", iat), ("exp", exp), ("user_id", user_id)):
            if not isinstance(value, int) or isinstance(value, bool):
                raise InvalidToken(f"Claim {name} must be an integer")
        if not isinstance(username, str) or not username:
            raise InvalidToken("Claim username must be a non-empty string")
        if not isinstance(jti, str) or not jti:
            raise InvalidToken("Claim jti must be a non-empty string")
        if not isinstance(roles, list) or not all(isinstance(r, str) for r in roles):
            raise InvalidToken("Claim roles must be a list of strings")

        return TokenClaims(
            issuer=payload["iss"],
            audience=payload["aud"],
            issued_at=iat,
            expires_at=exp,
            jti=jti,
            user_id=user_id,
            username=username,
            roles=tuple(roles),
        )
