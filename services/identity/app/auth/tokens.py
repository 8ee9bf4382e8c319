"""
Identity service — signed token issuance and verification.

Every token is an HS256 JWT (python-jose) carrying ``sub``, ``iat``, ``exp``,
``jti``, ``iss``, ``aud`` and a ``typ`` claim naming its purpose. Each
purpose signs with its own secret, so a refresh token can never pass as an
access token even before the ``typ`` check runs.

The issuer is built from an explicit configuration object rather than
reading the environment, which keeps it trivially constructible in tests.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from jose import ExpiredSignatureError, JWTError, jwt

from app.auth.constants import TokenPurpose
from app.exceptions import TokenExpired, TokenInvalid

if TYPE_CHECKING:
    from app.auth.models import User
    from app.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TokenConfig:
    secret: str
    expire_seconds: int


class TokenIssuer:
    def __init__(
        self,
        configs: dict[TokenPurpose, TokenConfig],
        *,
        algorithm: str = "HS256",
        issuer: str,
        audience: str,
    ) -> None:
        missing = set(TokenPurpose) - set(configs)
        if missing:
            raise ValueError(
                f"Missing token config for: {', '.join(sorted(p.value for p in missing))}"
            )
        self._configs = dict(configs)
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenIssuer:
        return cls(
            {
                TokenPurpose.ACCESS: TokenConfig(
                    settings.jwt_access_secret, settings.jwt_access_expire_seconds
                ),
                TokenPurpose.REFRESH: TokenConfig(
                    settings.jwt_refresh_secret, settings.jwt_refresh_expire_seconds
                ),
                TokenPurpose.RESET: TokenConfig(
                    settings.jwt_reset_secret, settings.jwt_reset_expire_seconds
                ),
            },
            algorithm=settings.jwt_algorithm,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
        )

    def expire_seconds(self, purpose: TokenPurpose) -> int:
        return self._configs[purpose].expire_seconds

    # ── Issue ─────────────────────────────────────────────────────────────────

    def issue(
        self,
        purpose: TokenPurpose,
        payload: dict[str, Any],
        ttl: int | None = None,
    ) -> str:
        """
        Sign ``payload`` for ``purpose``.

        ``ttl`` overrides the purpose's default lifetime in seconds; a
        negative value yields an already-expired token.
        """
        config = self._configs[purpose]
        # Sub-second iat so a "not before" marker set in the same second
        # still separates tokens minted before and after it.
        now = datetime.now(timezone.utc).timestamp()
        lifetime = config.expire_seconds if ttl is None else ttl
        claims = {
            **payload,
            "iat": now,
            "exp": int(now + lifetime),
            "jti": uuid.uuid4().hex,
            "typ": purpose.value,
            "iss": self.issuer,
            "aud": self.audience,
        }
        return jwt.encode(claims, config.secret, algorithm=self.algorithm)

    # ── Verify ────────────────────────────────────────────────────────────────

    def verify(self, purpose: TokenPurpose, token: str) -> dict[str, Any]:
        """
        Return the claims of a valid token of ``purpose``.

        Raises:
          TokenExpired — signature is valid but ``exp`` has passed
          TokenInvalid — anything else (bad signature, wrong issuer/audience,
                         malformed token, token minted for another purpose)
        """
        config = self._configs[purpose]
        try:
            claims = jwt.decode(
                token,
                config.secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                audience=self.audience,
            )
        except ExpiredSignatureError:
            logger.info("Rejected %s token: expired", purpose.value)
            raise TokenExpired()
        except JWTError as exc:
            logger.info("Rejected %s token: %s", purpose.value, exc)
            raise TokenInvalid()

        if claims.get("typ") != purpose.value or not claims.get("sub"):
            logger.info("Rejected %s token: wrong type or missing subject", purpose.value)
            raise TokenInvalid()
        return claims

    # ── Claim builders ────────────────────────────────────────────────────────

    @staticmethod
    def access_claims(user: User) -> dict[str, Any]:
        """Subject plus a denormalized snapshot of the user at issuance."""
        return {
            "sub": str(user.id),
            "user": {
                "id": str(user.id),
                "username": user.username,
                "email": user.email,
                "role": user.role.value,
                "is_account_verified": user.is_account_verified,
            },
        }

    @staticmethod
    def subject_claims(user: User) -> dict[str, Any]:
        return {"sub": str(user.id)}
