"""Domain models (Pydantic v2 and plain dataclasses).

These models describe *what* flows through one token generation, not *how*
it is obtained. Nothing here outlives a single invocation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cryptography import x509
from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class EnrollmentToken(BaseModel):
    """The artifact handed to a joining node.

    Serialized by alias (`ver`, `adr`, `fgr`, `key`), which is the wire shape
    consumers parse.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: str = Field(
        ...,
        min_length=1,
        alias="ver",
        description="Version reported by the node.",
    )
    addresses: tuple[str, ...] = Field(
        ...,
        min_length=1,
        alias="adr",
        description="Filtered `host:port` addresses the joining node should try, in order.",
    )
    fingerprint: str = Field(
        ...,
        pattern=r"^[0-9a-f]{40}$",
        alias="fgr",
        description="SHA-1 hex digest of the HTTP layer CA certificate (DER).",
    )
    credential: str = Field(
        ...,
        min_length=1,
        alias="key",
        repr=False,
        description="Freshly minted API key secret.",
    )


class CredentialResponse(BaseModel):
    """Body of a successful create-API-key call."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    api_key: str = Field(..., min_length=1, repr=False)
    name: str | None = None
    expiration: int | None = Field(
        default=None,
        description="Expiration as epoch milliseconds, when the node reports one.",
    )


class NodeInfo(BaseModel):
    version: str = Field(..., min_length=1)
    bound_addresses: list[str] = Field(default_factory=list)
    publish_address: str | None = None


@dataclass(frozen=True)
class KeystoreHandle:
    """A keystore read from disk but not yet decrypted into entries."""

    path: Path
    keystore_format: str
    data: bytes = field(repr=False)


@dataclass(frozen=True)
class KeystoreEntry:
    """A private key with its certificate chain, leaf first."""

    alias: str | None
    private_key: Any = field(repr=False)
    certificate_chain: tuple[x509.Certificate, ...] = ()

    @property
    def certificate(self) -> x509.Certificate:
        return self.certificate_chain[0]
