# easy_ops/core/security.py
import base64
import enum
import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from typing import Optional


logger = logging.getLogger(__name__)


class Privilege(str, enum.Enum):
    USER = "user"
    SERVICE = "service"


class UserRole(str, enum.Enum):
    STAFF = "staff"
    MANAGER = "manager"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    """Who is performing a stock operation, and with which storage privilege."""
    user_id: Optional[str]
    role: UserRole = UserRole.STAFF
    privilege: Privilege = Privilege.USER

    @classmethod
    def service(cls) -> "Actor":
        # system-attributed writes (webhooks, scheduled jobs) carry no user
        return cls(user_id=None, role=UserRole.ADMIN, privilege=Privilege.SERVICE)

    @property
    def is_service(self) -> bool:
        return self.privilege == Privilege.SERVICE


class SignatureScheme(str, enum.Enum):
    BODY = "body"
    URL_BODY = "url_body"
    TIMESTAMP_BODY = "timestamp_body"


class SecurityUtils:

    # ---------------- Webhook signatures ----------------
    @staticmethod
    def string_to_sign(
        scheme: SignatureScheme,
        raw_body: str,
        url: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> str:
        if scheme == SignatureScheme.BODY:
            return raw_body
        if scheme == SignatureScheme.URL_BODY:
            if not url:
                raise ValueError("Notification URL is required for url_body signatures")
            return f"{url}{raw_body}"
        if scheme == SignatureScheme.TIMESTAMP_BODY:
            if not timestamp:
                raise ValueError("Request timestamp is required for timestamp_body signatures")
            return f"{timestamp}{raw_body}"
        raise ValueError(f"Unknown signature scheme: {scheme}")

    @staticmethod
    def compute_webhook_signature(secret: str, message: str) -> str:
        """HMAC-SHA256 of the canonical string, base64 encoded (Square's format)"""
        digest = hmac.new(
            secret.encode("utf-8"),
            message.encode("utf-8"),
            hashlib.sha256,
        ).digest()
        return base64.b64encode(digest).decode()

    @staticmethod
    def verify_webhook_signature(secret: str, message: str, signature: str) -> bool:
        expected = SecurityUtils.compute_webhook_signature(secret, message)
        return hmac.compare_digest(expected.encode(), signature.strip().encode())

    # ---------------- Barcodes ----------------
    @staticmethod
    def generate_barcode_number() -> str:
        """Random 10-digit lookup number for items created without one"""
        return str(1_000_000_000 + secrets.randbelow(9_000_000_000))
