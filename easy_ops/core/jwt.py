# easy_ops/core/jwt.py
from typing import Optional
from jose import jwt, JWTError

from easy_ops.core.config import settings


class JWTUtils:
    @staticmethod
    def decode_access_token(token: str) -> Optional[dict]:
        """Validate a token issued by the identity provider; None when invalid or expired."""
        if not settings.AUTH_JWT_SECRET:
            return None
        options = {"verify_aud": bool(settings.AUTH_JWT_AUDIENCE)}
        try:
            return jwt.decode(
                token,
                settings.AUTH_JWT_SECRET,
                algorithms=[settings.AUTH_JWT_ALGORITHM],
                audience=settings.AUTH_JWT_AUDIENCE,
                options=options,
            )
        except JWTError:
            return None

    @staticmethod
    def role_claim(payload: dict) -> Optional[str]:
        app_metadata = payload.get("app_metadata") or {}
        return app_metadata.get("role") or payload.get("user_role")
