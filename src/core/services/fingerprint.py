"""Trust fingerprint of the HTTP layer CA.

Reads the HTTP layer keystore, finds the private key entry whose certificate
is a CA, and hashes that certificate's DER bytes. SHA-1 is kept for format
compatibility with existing token consumers.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterator, Sequence

from asn1crypto import pkcs12 as asn1_pkcs12
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from core.domain.errors import KeyExtractionError, KeystoreLoadError
from core.domain.models import KeystoreEntry, KeystoreHandle

logger = logging.getLogger(__name__)

PKCS12 = "PKCS12"
JKS = "jks"

_PKCS12_SUFFIXES = (".p12", ".pfx", ".pkcs12")
_KEY_BAG_IDS = ("key_bag", "pkcs8_shrouded_key_bag")


def detect_keystore_format(path: Path) -> str:
    if path.suffix.lower() in _PKCS12_SUFFIXES:
        return PKCS12
    return JKS


def _password_bytes(password: str | None) -> bytes | None:
    if not password:
        return None
    return password.encode("utf-8")


def load_keystore(path: Path, password: str | None) -> KeystoreHandle:
    """Read and open the keystore at `path`.

    Raises `KeystoreLoadError` naming the format and path when the file is
    missing, unreadable, in an unsupported format, or not decryptable.
    """

    keystore_format = detect_keystore_format(path)
    prefix = f"cannot read a [{keystore_format}] keystore from [{path}]"

    try:
        with open(path, "rb") as stream:
            data = stream.read()
    except OSError as exc:
        raise KeystoreLoadError(
            f"{prefix} - {exc.strerror or 'file could not be opened'}",
            path=str(path),
            keystore_format=keystore_format,
        ) from exc

    if keystore_format != PKCS12:
        raise KeystoreLoadError(
            f"{prefix} - only PKCS12 keystores (.p12, .pfx) are supported",
            path=str(path),
            keystore_format=keystore_format,
        )

    try:
        pkcs12.load_pkcs12(data, _password_bytes(password))
    except ValueError as exc:
        raise KeystoreLoadError(
            f"{prefix} - the keystore is corrupt or the password is incorrect",
            path=str(path),
            keystore_format=keystore_format,
        ) from exc

    logger.debug("Loaded %s keystore from %s", keystore_format, path)
    return KeystoreHandle(path=path, keystore_format=keystore_format, data=data)


def _public_key_der(key: Any) -> bytes:
    return key.public_bytes(serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo)


def _bag_alias(bag: asn1_pkcs12.SafeBag) -> str | None:
    for attribute in bag["bag_attributes"].native or []:
        if attribute["type"] == "friendly_name" and attribute["values"]:
            return str(attribute["values"][0])
    return None


def _iter_key_bags(data: bytes) -> Iterator[asn1_pkcs12.SafeBag]:
    """Key bags found in the plain (`data`) safes of the PFX."""

    pfx = asn1_pkcs12.Pfx.load(data)
    for content_info in pfx.authenticated_safe:
        if content_info["content_type"].native != "data":
            continue
        for bag in asn1_pkcs12.SafeContents.load(content_info["content"].native):
            if bag["bag_id"].native in _KEY_BAG_IDS:
                yield bag


def _load_key(bag: asn1_pkcs12.SafeBag, password: bytes | None) -> Any:
    der = bag["bag_value"].untag().dump()
    if bag["bag_id"].native == "key_bag":
        return serialization.load_der_private_key(der, None)
    return serialization.load_der_private_key(der, password)


def _build_chain(leaf: x509.Certificate, certificates: Sequence[x509.Certificate]) -> tuple[x509.Certificate, ...]:
    chain = [leaf]
    current = leaf
    while current.issuer != current.subject and len(chain) <= len(certificates):
        issuer = next((c for c in certificates if c.subject == current.issuer and c not in chain), None)
        if issuer is None:
            break
        chain.append(issuer)
        current = issuer
    return tuple(chain)


def extract_key_entries(handle: KeystoreHandle | None, password: str | None) -> list[KeystoreEntry]:
    """Decrypt every private key entry of a loaded keystore.

    Keys are paired with their certificate by public key; the chain is then
    followed through the other certificates of the keystore, leaf first.
    """

    if handle is None:
        raise KeyExtractionError("failed to list keys and certificates: no keystore was loaded")

    failure = f"failed to list keys and certificates from [{handle.keystore_format}] keystore [{handle.path}]"
    secret = _password_bytes(password)
    try:
        bundle = pkcs12.load_pkcs12(handle.data, secret)
        keys = [(_bag_alias(bag), _load_key(bag, secret)) for bag in _iter_key_bags(handle.data)]
    except (ValueError, TypeError) as exc:
        raise KeyExtractionError(failure) from exc

    certificates = [c.certificate for c in bundle.additional_certs]
    if bundle.cert is not None:
        certificates.insert(0, bundle.cert.certificate)
    if not keys and bundle.key is not None:
        # Key bags stored inside an encrypted safe.
        alias = None
        if bundle.cert is not None and bundle.cert.friendly_name:
            alias = bundle.cert.friendly_name.decode("utf-8", errors="replace")
        keys = [(alias, bundle.key)]

    by_public_key = {_public_key_der(c.public_key()): c for c in certificates}
    entries: list[KeystoreEntry] = []
    for alias, key in keys:
        leaf = by_public_key.get(_public_key_der(key.public_key()))
        if leaf is None:
            logger.debug("Skipping key entry %s without a certificate", alias)
            continue
        entries.append(KeystoreEntry(alias=alias, private_key=key, certificate_chain=_build_chain(leaf, certificates)))
    return entries


def is_ca_certificate(certificate: x509.Certificate) -> bool:
    try:
        constraints = certificate.extensions.get_extension_for_class(x509.BasicConstraints)
    except x509.ExtensionNotFound:
        return False
    return constraints.value.ca


def select_ca_entry(entries: Sequence[KeystoreEntry]) -> KeystoreEntry:
    """Return the single entry whose certificate is a CA certificate."""

    ca_entries = [entry for entry in entries if entry.certificate_chain and is_ca_certificate(entry.certificate)]
    if not ca_entries:
        raise KeyExtractionError(
            "HTTP layer keystore doesn't contain any private key entries "
            "where the associated certificate is a CA certificate"
        )
    if len(ca_entries) > 1:
        raise KeyExtractionError(
            "HTTP layer keystore contains multiple private key entries "
            "where the associated certificate is a CA certificate"
        )
    return ca_entries[0]


def fingerprint(entry: KeystoreEntry) -> str:
    """SHA-1 over the DER encoding of the entry's leaf certificate, lowercase hex."""

    return entry.certificate.fingerprint(hashes.SHA1()).hex()
