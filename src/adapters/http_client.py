"""httpx wrapper for calls against the local node.

Centralizes timeouts, headers, basic auth and the truststore used to verify
the node's HTTP certificate. Tests substitute any `HttpExecutor` instead.
"""

from __future__ import annotations

import json
import logging
import re
import ssl
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

import httpx
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from core.config import AppSettings
from core.domain.errors import KeystoreLoadError
from core.interfaces.http import HttpExecutor, HttpRequest, HttpResponse

logger = logging.getLogger(__name__)


def endpoint_url(base_url: str, suffix: str) -> str:
    """Append a fixed endpoint path to `base_url`, keeping scheme/host/port."""

    parts = urlsplit(base_url)
    path = re.sub(r"/+", "/", f"{parts.path}/{suffix}")
    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))


def _truststore_pem(path: Path, password: str | None) -> str:
    """Return the CA certificates of a PKCS12 or PEM truststore as PEM text."""

    with open(path, "rb") as stream:
        data = stream.read()

    if path.suffix.lower() in (".p12", ".pfx", ".pkcs12"):
        bundle = pkcs12.load_pkcs12(data, password.encode("utf-8") if password else None)
        certs = [c.certificate for c in bundle.additional_certs]
        if bundle.cert is not None:
            certs.append(bundle.cert.certificate)
        return "".join(c.public_bytes(serialization.Encoding.PEM).decode("ascii") for c in certs)

    return data.decode("ascii")


def build_verify(settings: AppSettings) -> ssl.SSLContext | bool:
    """TLS verification for the node: the configured truststore, else system defaults."""

    if settings.http_ssl_truststore_path is None:
        return True
    path = settings.resolve_path(settings.http_ssl_truststore_path)
    keystore_format = "PKCS12" if path.suffix.lower() in (".p12", ".pfx", ".pkcs12") else "PEM"
    context = ssl.create_default_context()
    try:
        context.load_verify_locations(cadata=_truststore_pem(path, settings.secret("http_ssl_truststore_password")))
    except (OSError, ValueError) as exc:
        raise KeystoreLoadError(
            f"cannot read a [{keystore_format}] truststore from [{path}]",
            path=str(path),
            keystore_format=keystore_format,
        ) from exc
    return context


def build_client(
    settings: AppSettings | None = None,
    *,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Create an `httpx.Client` with the configured timeout, headers and trust."""

    settings = settings or AppSettings()
    headers = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    return httpx.Client(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        headers=headers,
        verify=build_verify(settings),
        transport=transport,
    )


class HttpxExecutor(HttpExecutor):
    """`HttpExecutor` over a synchronous `httpx.Client`."""

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    def execute(self, request: HttpRequest) -> HttpResponse:
        logger.debug("%s %s", request.method, request.url)
        response = self._client.request(
            request.method,
            request.url,
            auth=httpx.BasicAuth(request.username, request.password),
            json=request.body,
        )
        logger.debug("%s %s -> %s", request.method, request.url, response.status_code)

        body: dict[str, object] = {}
        if response.content:
            try:
                payload = response.json()
            except json.JSONDecodeError:
                payload = None
            if isinstance(payload, dict):
                body = payload
        return HttpResponse(status=response.status_code, body=body)
