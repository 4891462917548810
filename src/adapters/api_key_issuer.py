"""Mint the scoped API key embedded in an enrollment token.

One POST to the node's create-API-key endpoint, authenticated as the
operator. Never retried: a retry could leave a second live key behind.
"""

from __future__ import annotations

import logging
import secrets

from pydantic import ValidationError

from adapters.http_client import endpoint_url
from core.domain.errors import ResponseParseError, UnexpectedResponseError
from core.domain.models import CredentialResponse
from core.interfaces.http import HttpExecutor, HttpRequest

logger = logging.getLogger(__name__)

API_KEY_PATH = "_security/api_key"
ENROLLMENT_ROLE = "create_enrollment_token"
ENROLLMENT_PRIVILEGE = "cluster:admin/xpack/security/enrollment*"


def api_key_url(base_url: str) -> str:
    return endpoint_url(base_url, API_KEY_PATH)


def api_key_request_body(*, name: str, expiration: str) -> dict[str, object]:
    return {
        "name": name,
        "expiration": expiration,
        "role_descriptors": {
            ENROLLMENT_ROLE: {
                "cluster": [ENROLLMENT_PRIVILEGE],
            },
        },
    }


class ApiKeyIssuer:
    """Issues short-lived API keys restricted to the enrollment privilege."""

    def __init__(self, http: HttpExecutor, *, expiration: str) -> None:
        self._http = http
        self.expiration = expiration

    def issue(self, base_url: str, username: str, password: str) -> CredentialResponse:
        url = api_key_url(base_url)
        name = f"enrollment_token_API_key_{secrets.token_urlsafe(16)}"
        response = self._http.execute(
            HttpRequest(
                method="POST",
                url=url,
                username=username,
                password=password,
                body=api_key_request_body(name=name, expiration=self.expiration),
            )
        )
        if response.status != 200:
            raise UnexpectedResponseError(method="POST", url=url, status=response.status)

        try:
            credential = CredentialResponse.model_validate(response.body)
        except ValidationError as exc:
            loc = exc.errors()[0]["loc"]
            field = ".".join(str(part) for part in loc) or "body"
            raise ResponseParseError(field=field, url=url) from exc

        logger.info(
            "Created API key [%s] (id %s, expires at %s) for enrollment",
            credential.name or name,
            credential.id,
            credential.expiration,
        )
        return credential
