"""QR payload formats used on child badges.

Three formats are printed in the wild:

- ``LPRDS:<base64>``   XOR-obfuscated child id (legacy, decodable client-side)
- ``LPRDS2:<token>``   signed token verified server-side (new badges)
- ``LPRDS-<CODE>``     the 5-character `code_qr_id`, also found wrapped in JSON
"""
from __future__ import annotations

import base64
import binascii
import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..common.app_logger import get_logger
from ..common.datetime_utils import to_base36
from ..core.constants import QR_CODE_PREFIX, QR_DEFAULT_XOR_KEY, QR_PAYLOAD_PREFIX, QR_SIGNED_PREFIX
from .code_generator import normalize_code

log = get_logger("qr.codec")


@dataclass(frozen=True)
class ParsedPayload:
    child_id: Optional[str]
    is_valid: bool


class XorChildCodec:
    """Obfuscation only: the key ships with every client that decodes badges."""

    def __init__(self, key: str = QR_DEFAULT_XOR_KEY):
        if not key:
            raise ValueError("XOR key must not be empty")
        self._key = key.encode("utf-8")

    def _xor(self, data: bytes) -> bytes:
        key = self._key
        return bytes(b ^ key[i % len(key)] for i, b in enumerate(data))

    def encode(self, child_id: str, *, now_ms: Optional[int] = None) -> str:
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        plain = f"{child_id}:{to_base36(now_ms)}".encode("utf-8")
        return base64.b64encode(self._xor(plain)).decode("ascii")

    def to_payload(self, child_id: str, *, now_ms: Optional[int] = None) -> str:
        return QR_PAYLOAD_PREFIX + self.encode(child_id, now_ms=now_ms)

    def decode(self, encoded: str) -> Optional[str]:
        try:
            raw = base64.b64decode(encoded.encode("ascii"), validate=True)
            plain = self._xor(raw).decode("utf-8")
        except (binascii.Error, UnicodeError, ValueError, AttributeError):
            return None
        child_id = plain.split(":", 1)[0]
        return child_id or None

    def parse_payload(self, payload: str) -> ParsedPayload:
        if not payload or not payload.startswith(QR_PAYLOAD_PREFIX):
            return ParsedPayload(child_id=None, is_valid=False)
        child_id = self.decode(payload[len(QR_PAYLOAD_PREFIX):])
        return ParsedPayload(child_id=child_id, is_valid=child_id is not None)


class SignedChildToken:
    """Signed, expiring badge token; only the server holding the secret can verify it."""

    SALT = "child-badge"

    def __init__(self, secret_key: str, *, max_age_days: int = 400):
        self._serializer = URLSafeTimedSerializer(secret_key, salt=self.SALT)
        self._max_age = int(max_age_days) * 86400

    def to_payload(self, child_id: str) -> str:
        return QR_SIGNED_PREFIX + self._serializer.dumps({"cid": child_id})

    def verify(self, payload: str) -> Optional[str]:
        if not payload or not payload.startswith(QR_SIGNED_PREFIX):
            return None
        token = payload[len(QR_SIGNED_PREFIX):]
        try:
            data = self._serializer.loads(token, max_age=self._max_age)
        except SignatureExpired:
            log.info("expired badge token presented")
            return None
        except BadSignature:
            return None
        child_id = data.get("cid") if isinstance(data, dict) else None
        return str(child_id) if child_id else None


class PayloadKind(str, Enum):
    SIGNED = "signed"
    XOR = "xor"
    CODE = "code"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ScannedPayload:
    """What a scanned string points at: a child id, or a short badge code."""

    kind: PayloadKind
    child_id: Optional[str] = None
    code: Optional[str] = None


class QRPayloadReader:
    def __init__(self, xor_codec: XorChildCodec, signed: SignedChildToken):
        self._xor = xor_codec
        self._signed = signed

    def read(self, raw: str) -> ScannedPayload:
        payload = (raw or "").strip()
        if payload.startswith(QR_SIGNED_PREFIX):
            return ScannedPayload(PayloadKind.SIGNED, child_id=self._signed.verify(payload))
        if payload.startswith(QR_PAYLOAD_PREFIX):
            return ScannedPayload(PayloadKind.XOR, child_id=self._xor.parse_payload(payload).child_id)

        # Older badges: JSON {"code": ...} or LPRDS-<CODE>
        try:
            parsed = json.loads(payload)
        except ValueError:
            parsed = None
        if isinstance(parsed, dict) and (parsed.get("code") or parsed.get("code_qr_id")):
            token = normalize_code(str(parsed.get("code") or parsed.get("code_qr_id")))
            payload = QR_CODE_PREFIX + token

        if payload.startswith(QR_CODE_PREFIX):
            code = payload[len(QR_CODE_PREFIX):].strip()
            return ScannedPayload(PayloadKind.CODE, code=code or None)
        return ScannedPayload(PayloadKind.UNKNOWN)


def badge_payload(child_id: str, *, token_format: str, xor_codec: XorChildCodec, signed: SignedChildToken) -> str:
    """Payload printed on a new badge for the configured format."""
    if token_format == "legacy":
        return xor_codec.to_payload(child_id)
    return signed.to_payload(child_id)
