"""Certificate generation for the control plane.

An environment gets its own CA at prepare time. The state database's
server certificate is signed by that CA and written as a single PEM
(key followed by certificate), which is the form mongod expects for
--sslPEMKeyFile.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from ipaddress import AddressValueError, IPv4Address
from typing import Iterable

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from .errors import ValidationError

KEY_BITS = 2048
CA_VALIDITY = timedelta(days=365 * 10)
SERVER_VALIDITY = timedelta(days=365 * 10)


def generate_ca(env_name: str) -> tuple[str, str]:
    """Generate a self-signed CA for an environment.

    Args:
        env_name: Environment name, embedded in the subject

    Returns:
        Tuple of (cert_pem, key_pem)
    """
    key, key_pem = _generate_key()
    usage = x509.KeyUsage(
        digital_signature=False,
        content_commitment=False,
        key_encipherment=False,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=True,
        crl_sign=False,
        encipher_only=False,
        decipher_only=False,
    )
    ski = x509.SubjectKeyIdentifier.from_public_key(key.public_key())
    aki = x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski)
    name = x509.Name(
        [
            x509.NameAttribute(x509.NameOID.ORGANIZATION_NAME, "cpboot"),
            x509.NameAttribute(x509.NameOID.COMMON_NAME, f"cpboot-generated CA for environment {env_name!r}"),
        ]
    )
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .not_valid_before(now - timedelta(minutes=5))
        .not_valid_after(now + CA_VALIDITY)
        .serial_number(x509.random_serial_number())
        .public_key(key.public_key())
        .add_extension(x509.BasicConstraints(ca=True, path_length=1), critical=True)
        .add_extension(usage, critical=True)
        .add_extension(ski, critical=False)
        .add_extension(aki, critical=False)
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM).decode(), key_pem.decode()


def generate_server_cert(ca_cert_pem: str, ca_key_pem: str, hostnames: Iterable[str]) -> tuple[str, str]:
    """Generate a server certificate signed by the environment CA.

    Args:
        ca_cert_pem: CA certificate (PEM)
        ca_key_pem: CA private key (PEM)
        hostnames: Extra DNS names or IPv4 addresses for the SAN

    Returns:
        Tuple of (cert_pem, key_pem)

    Raises:
        ValidationError: If the CA material cannot be parsed
    """
    try:
        ca_cert = x509.load_pem_x509_certificate(ca_cert_pem.encode())
        ca_key = serialization.load_pem_private_key(ca_key_pem.encode(), None)
    except ValueError as e:
        raise ValidationError(message=f"invalid CA certificate or key: {e}") from e

    key, key_pem = _generate_key()
    alternative_entries = {x509.DNSName("localhost"), x509.IPAddress(IPv4Address("127.0.0.1"))}
    for hostname in hostnames:
        try:
            ip = IPv4Address(hostname)
        except AddressValueError:
            alternative_entries.add(x509.DNSName(hostname))
        else:
            alternative_entries.add(x509.IPAddress(ip))
    usage = x509.KeyUsage(
        digital_signature=True,
        content_commitment=False,
        key_encipherment=True,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=False,
        crl_sign=False,
        encipher_only=False,
        decipher_only=False,
    )
    name = x509.Name(
        [
            *ca_cert.subject.get_attributes_for_oid(x509.NameOID.ORGANIZATION_NAME),
            x509.NameAttribute(x509.NameOID.COMMON_NAME, "*"),
        ]
    )
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(ca_cert.subject)
        .not_valid_before(now - timedelta(minutes=5))
        .not_valid_after(now + SERVER_VALIDITY)
        .serial_number(x509.random_serial_number())
        .public_key(key.public_key())
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(usage, critical=True)
        .add_extension(x509.ExtendedKeyUsage([x509.ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)
        .add_extension(x509.SubjectAlternativeName(sorted(alternative_entries, key=str)), critical=False)
        .sign(ca_key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM).decode(), key_pem.decode()


def _generate_key():
    key = rsa.generate_private_key(65537, KEY_BITS)
    pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return key, pem
