from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

from core.config import AppSettings
from core.interfaces.http import HttpRequest, HttpResponse

KEYSTORE_PASSWORD = "password"

BOUND_ADDRESSES = [
    "[::1]:9200",
    "127.0.0.1:9200",
    "192.168.0.1:9201",
    "172.16.254.1:9202",
    "[2001:db8:0:1234:0:567:8:1]:9203",
]


def generate_certificate(common_name: str, *, ca: bool, issuer=None):
    """Self-signed (or `issuer`-signed) certificate and its private key."""

    key = ec.generate_private_key(ec.SECP256R1())
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    issuer_name, signing_key = subject, key
    if issuer is not None:
        issuer_cert, issuer_key = issuer
        issuer_name, signing_key = issuer_cert.subject, issuer_key

    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer_name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .sign(signing_key, hashes.SHA256())
    )
    return cert, key


def write_keystore(path: Path, cert, key, *, password: str = KEYSTORE_PASSWORD, cas=None) -> Path:
    path.write_bytes(
        pkcs12.serialize_key_and_certificates(
            name=b"http_ca",
            key=key,
            cert=cert,
            cas=cas,
            encryption_algorithm=serialization.BestAvailableEncryption(password.encode("utf-8")),
        )
    )
    return path


def _der(tag: int, content: bytes) -> bytes:
    length = len(content)
    if length < 0x80:
        header = bytes([length])
    else:
        size = length.to_bytes((length.bit_length() + 7) // 8, "big")
        header = bytes([0x80 | len(size)]) + size
    return bytes([tag]) + header + content


def _sequence(*items: bytes) -> bytes:
    return _der(0x30, b"".join(items))


def _set(*items: bytes) -> bytes:
    return _der(0x31, b"".join(items))


def _explicit(content: bytes) -> bytes:
    return _der(0xA0, content)


def _oid(dotted: str) -> bytes:
    parts = [int(part) for part in dotted.split(".")]
    body = bytearray([40 * parts[0] + parts[1]])
    for part in parts[2:]:
        chunk = [part & 0x7F]
        part >>= 7
        while part:
            chunk.insert(0, 0x80 | (part & 0x7F))
            part >>= 7
        body.extend(chunk)
    return _der(0x06, bytes(body))


_DATA = "1.2.840.113549.1.7.1"
_KEY_BAG = "1.2.840.113549.1.12.10.1.1"
_CERT_BAG = "1.2.840.113549.1.12.10.1.3"
_FRIENDLY_NAME = "1.2.840.113549.1.9.20"
_X509_CERTIFICATE = "1.2.840.113549.1.9.22.1"


def _friendly_name(alias: str) -> bytes:
    return _set(_sequence(_oid(_FRIENDLY_NAME), _set(_der(0x1E, alias.encode("utf-16-be")))))


def write_unprotected_keystore(path: Path, entries) -> Path:
    """PKCS12 file holding one plain key bag per `(alias, cert, key)` entry.

    cryptography can only serialize a single key, so the structure is built by
    hand: one unencrypted safe, no MAC, opened with an empty password.
    """

    bags = []
    for alias, cert, key in entries:
        key_der = key.private_bytes(
            serialization.Encoding.DER, serialization.PrivateFormat.PKCS8, serialization.NoEncryption()
        )
        bags.append(_sequence(_oid(_KEY_BAG), _explicit(key_der), _friendly_name(alias)))
        cert_value = _sequence(
            _oid(_X509_CERTIFICATE),
            _explicit(_der(0x04, cert.public_bytes(serialization.Encoding.DER))),
        )
        bags.append(_sequence(_oid(_CERT_BAG), _explicit(cert_value), _friendly_name(alias)))

    safe_contents = _sequence(*bags)
    authenticated_safe = _sequence(_sequence(_oid(_DATA), _explicit(_der(0x04, safe_contents))))
    pfx = _sequence(_der(0x02, b"\x03"), _sequence(_oid(_DATA), _explicit(_der(0x04, authenticated_safe))))
    path.write_bytes(pfx)
    return path


class FakeHttp:
    """Records requests and answers from a `(method, url) -> HttpResponse` table."""

    def __init__(self, responses: dict[tuple[str, str], HttpResponse] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[HttpRequest] = []

    def execute(self, request: HttpRequest) -> HttpResponse:
        self.calls.append(request)
        return self.responses[(request.method, request.url)]


@pytest.fixture
def ca_material():
    return generate_certificate("Test HTTP CA", ca=True)


@pytest.fixture
def ca_keystore(tmp_path: Path, ca_material) -> Path:
    cert, key = ca_material
    return write_keystore(tmp_path / "httpCa.p12", cert, key)


@pytest.fixture
def settings(tmp_path: Path, ca_keystore: Path) -> AppSettings:
    return AppSettings(
        _env_file=None,
        security_enabled=True,
        http_ssl_enabled=True,
        enrollment_enabled=True,
        config_dir=tmp_path,
        http_ssl_keystore_path=Path(ca_keystore.name),
        http_ssl_keystore_password=KEYSTORE_PASSWORD,
        http_host="localhost",
        http_port=9200,
    )


@pytest.fixture
def api_key_body() -> dict:
    return {
        "id": "DR6CzXkBDf8amV_48yYX",
        "name": "enrollment_token_API_key_VuaCfGcBCdbkQm",
        "expiration": "1622652381786",
        "api_key": "x3YqU_rqQwm-ESrkExcnOg",
    }


@pytest.fixture
def node_info_body() -> dict:
    return {
        "nodes": {
            "sxLDrFu8SnKepObrEOjPZQ": {
                "version": "8.0.0",
                "http": {
                    "bound_address": list(BOUND_ADDRESSES),
                    "publish_address": "127.0.0.1:9200",
                },
            }
        }
    }
