"""Enrollment token encoding.

Wire format: standard padded base64 over compact UTF-8 JSON with exactly the
keys `ver`, `adr`, `fgr` and `key`.
"""

from __future__ import annotations

import base64
import json
from typing import Sequence

from core.domain.models import EnrollmentToken


def encode_token(token: EnrollmentToken) -> str:
    payload = token.model_dump(mode="json", by_alias=True)
    raw = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def build_token(
    version: str,
    addresses: Sequence[str],
    fingerprint: str,
    credential: str,
) -> EnrollmentToken:
    return EnrollmentToken(
        version=version,
        addresses=tuple(addresses),
        fingerprint=fingerprint,
        credential=credential,
    )


def assemble(
    version: str,
    addresses: Sequence[str],
    fingerprint: str,
    credential: str,
) -> str:
    """Build the token payload and return its transport-safe encoding."""

    return encode_token(build_token(version, addresses, fingerprint, credential))
