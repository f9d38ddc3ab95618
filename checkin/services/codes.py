# checkin/services/codes.py
import base64
import hmac
import io
import json
import secrets
from typing import Any, Dict

import qrcode

from checkin.core.config import settings
from checkin.models.attendance_session import AttendanceSession

# sem 0/O e 1/I para não confundir quem digita o código projetado
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_code(length: int | None = None) -> str:
    n = length or settings.CODE_LENGTH
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(n))


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def codes_match(expected: str, presented: str | None) -> bool:
    # comparação em tempo constante
    return hmac.compare_digest(normalize_code(expected).encode(), normalize_code(presented).encode())


def build_qr_payload(session: AttendanceSession) -> Dict[str, Any]:
    return {"code": session.code, "session_id": session.id, "points": session.points}


def encode_qr_payload(session: AttendanceSession) -> str:
    return json.dumps(build_qr_payload(session), separators=(",", ":"))


def render_qr_png(session: AttendanceSession) -> bytes:
    """PNG do QR que o organizador projeta no telão."""
    img = qrcode.make(encode_qr_payload(session))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def render_qr_data_url(session: AttendanceSession) -> str:
    b64 = base64.b64encode(render_qr_png(session)).decode("ascii")
    return f"data:image/png;base64,{b64}"
