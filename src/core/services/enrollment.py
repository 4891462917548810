"""Enrollment token generation.

Sequences the steps of one token generation and nothing more: validate the
node settings, fingerprint the HTTP layer CA, mint an API key, fetch the
node's bound addresses, filter them, encode the token. Every failure is
terminal for the invocation and propagates unchanged; the caller decides
whether to run the whole thing again.
"""

from __future__ import annotations

import logging
from enum import Enum

from adapters.api_key_issuer import ApiKeyIssuer
from adapters.node_info import NodeInfoFetcher
from core.config import AppSettings, setting_key
from core.domain.errors import ConfigError, EnrollmentError
from core.domain.models import EnrollmentToken
from core.interfaces.http import HttpExecutor
from core.services.addresses import filter_addresses
from core.services.fingerprint import (
    extract_key_entries,
    fingerprint,
    load_keystore,
    select_ca_entry,
)
from core.services.token_codec import build_token, encode_token

logger = logging.getLogger(__name__)


class EnrollmentState(str, Enum):
    VALIDATING_CONFIG = "validating_config"
    FINGERPRINT_READY = "fingerprint_ready"
    CREDENTIAL_ISSUED = "credential_issued"
    NODE_INFO_FETCHED = "node_info_fetched"
    ASSEMBLED = "assembled"
    FAILED = "failed"


_REQUIRED_FLAGS = ("security_enabled", "http_ssl_enabled", "enrollment_enabled")


def _keystore_not_configured() -> ConfigError:
    key = setting_key("http_ssl_keystore_path")
    return ConfigError(
        "Unable to create an enrollment token. The node's HTTP layer SSL configuration "
        f"is not configured with a keystore: '{key}' is not configured",
        setting=key,
    )


def validate_settings(settings: AppSettings) -> None:
    """Raise `ConfigError` for the first disabled flag or missing keystore path."""

    for flag in _REQUIRED_FLAGS:
        if not getattr(settings, flag):
            key = setting_key(flag)
            raise ConfigError(f"'{key}' must be enabled to create an enrollment token", setting=key)

    if settings.http_ssl_keystore_path is None:
        raise _keystore_not_configured()


def compute_ca_fingerprint(settings: AppSettings) -> str:
    """Fingerprint of the CA certificate held in the HTTP layer keystore."""

    if settings.http_ssl_keystore_path is None:
        raise _keystore_not_configured()
    path = settings.resolve_path(settings.http_ssl_keystore_path)
    password = settings.secret("http_ssl_keystore_password")
    handle = load_keystore(path, password)
    entries = extract_key_entries(handle, password)
    return fingerprint(select_ca_entry(entries))


class EnrollmentTokenGenerator:
    """Creates enrollment tokens from the local node's perspective.

    Holds no per-invocation state, so one instance may serve concurrent calls.
    """

    def __init__(
        self,
        settings: AppSettings,
        http: HttpExecutor,
        *,
        base_url: str | None = None,
    ) -> None:
        self._settings = settings
        self._issuer = ApiKeyIssuer(http, expiration=settings.api_key_expiration)
        self._fetcher = NodeInfoFetcher(http)
        self.base_url = base_url or settings.default_url()

    def generate(self, username: str, password: str) -> EnrollmentToken:
        state = EnrollmentState.VALIDATING_CONFIG
        try:
            validate_settings(self._settings)
            ca_fingerprint = compute_ca_fingerprint(self._settings)
            state = self._advance(state, EnrollmentState.FINGERPRINT_READY)

            credential = self._issuer.issue(self.base_url, username, password)
            state = self._advance(state, EnrollmentState.CREDENTIAL_ISSUED)

            node = self._fetcher.fetch(self.base_url, username, password)
            state = self._advance(state, EnrollmentState.NODE_INFO_FETCHED)

            addresses = filter_addresses(node.bound_addresses)
            token = build_token(node.version, addresses, ca_fingerprint, credential.api_key)
            self._advance(state, EnrollmentState.ASSEMBLED)
            return token
        except EnrollmentError as exc:
            self._advance(state, EnrollmentState.FAILED)
            logger.debug("Enrollment token generation failed: %s", exc.kind.value)
            raise

    def create(self, username: str, password: str) -> str:
        """Generate a token and return its base64 encoding."""

        return encode_token(self.generate(username, password))

    @staticmethod
    def _advance(current: EnrollmentState, target: EnrollmentState) -> EnrollmentState:
        logger.debug("Enrollment state %s -> %s", current.value, target.value)
        return target
