"""Error taxonomy for enrollment token generation.

Every failure is an `EnrollmentError` tagged with an `ErrorKind`, so callers
can branch on `exc.kind` without parsing messages.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    CONFIG = "config"
    KEYSTORE_LOAD = "keystore_load"
    KEY_EXTRACTION = "key_extraction"
    UNEXPECTED_RESPONSE = "unexpected_response"
    RESPONSE_PARSE = "response_parse"
    ADDRESS_PARSE = "address_parse"


class EnrollmentError(Exception):
    """Base class for all token generation failures."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigError(EnrollmentError):
    """A required setting is missing or a feature flag is off."""

    kind = ErrorKind.CONFIG

    def __init__(self, message: str, *, setting: str) -> None:
        super().__init__(message)
        self.setting = setting


class KeystoreLoadError(EnrollmentError):
    kind = ErrorKind.KEYSTORE_LOAD

    def __init__(self, message: str, *, path: str, keystore_format: str) -> None:
        super().__init__(message)
        self.path = path
        self.keystore_format = keystore_format


class KeyExtractionError(EnrollmentError):
    kind = ErrorKind.KEY_EXTRACTION


class UnexpectedResponseError(EnrollmentError):
    """A call to the node returned a status other than 200."""

    kind = ErrorKind.UNEXPECTED_RESPONSE

    def __init__(self, *, method: str, url: str, status: int) -> None:
        super().__init__(f"Unexpected response code [{status}] from calling {method} {url}")
        self.method = method
        self.url = url
        self.status = status


class ResponseParseError(EnrollmentError):
    """A 200 response lacked a field the caller depends on."""

    kind = ErrorKind.RESPONSE_PARSE

    def __init__(self, *, field: str, url: str) -> None:
        super().__init__(f"Response from {url} is missing required field [{field}]")
        self.field = field
        self.url = url


class AddressParseError(EnrollmentError):
    kind = ErrorKind.ADDRESS_PARSE

    def __init__(self, address: str, reason: str) -> None:
        super().__init__(f"{address}: {reason}")
        self.address = address
