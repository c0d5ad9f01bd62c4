"""Test helper functions."""

import json
import os
from datetime import datetime, timedelta, timezone
from io import BytesIO
from typing import Any, Dict, Optional

import jwt


def generate_auth_token(
    user: Dict[str, Any],
    secret: Optional[str] = None,
    expires_in: timedelta = timedelta(hours=24),
    algorithm: str = "HS256",
) -> str:
    """Mint an access token shaped like the login service's."""
    now = datetime.now(timezone.utc)
    payload = {
        "user": user,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    return jwt.encode(payload, secret or os.environ["JWT_SECRET"], algorithm=algorithm)


class MockSocket:
    """Socket stand-in feeding one raw HTTP request to a handler."""

    def __init__(self, raw_request: bytes):
        self.raw_request = raw_request
        self.sent = bytearray()

    def makefile(self, *args, **kwargs):
        return BytesIO(self.raw_request)

    def sendall(self, data):
        self.sent.extend(data)

    def close(self):
        pass


def build_raw_request(
    method: str,
    path: str,
    headers: Optional[Dict[str, str]] = None,
    body: Any = None,
) -> bytes:
    """Serialize an HTTP/1.1 request."""
    payload = b""
    if isinstance(body, bytes):
        payload = body
    elif body is not None:
        payload = (json.dumps(body) if not isinstance(body, str) else body).encode("utf-8")

    lines = [f"{method} {path} HTTP/1.1", "Host: localhost"]
    for name, value in (headers or {}).items():
        lines.append(f"{name}: {value}")
    if payload:
        lines.append("Content-Type: application/json")
        if not any(name.lower() == "content-length" for name in (headers or {})):
            lines.append(f"Content-Length: {len(payload)}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8") + payload


def parse_raw_response(raw: bytes) -> tuple[int, Dict[str, str], Any]:
    """Split a raw HTTP response into (status, headers, json body)."""
    head, _, body = bytes(raw).partition(b"\r\n\r\n")
    lines = head.decode("iso-8859-1").split("\r\n")
    status = int(lines[0].split(" ")[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return status, headers, json.loads(body.decode("utf-8")) if body else None
