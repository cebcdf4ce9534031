"""Unit tests for state database service definitions."""

from __future__ import annotations

import pytest
from cryptography import x509

from cpboot.mongo.service import (
    ensure_server_pem,
    mongo_service_conf,
    mongod_args,
    mongod_path,
    noauth_args,
    service_name,
)


@pytest.mark.cli_unit
class TestArgs:
    """Tests for mongod argument lists."""

    def test_noauth_args(self):
        """Test the exact transient mongod arguments."""
        assert noauth_args("/var/lib/cpboot", 37017) == [
            "--noauth",
            "--dbpath",
            "/var/lib/cpboot/db",
            "--sslOnNormalPorts",
            "--sslPEMKeyFile",
            "/var/lib/cpboot/server.pem",
            "--sslPEMKeyPassword",
            "ignored",
            "--bind_ip",
            "127.0.0.1",
            "--port",
            "37017",
            "--noprealloc",
            "--syslog",
            "--smallfiles",
            "--journal",
        ]

    def test_auth_args(self):
        """Test authenticated arguments differ only in the first flag and bind address."""
        args = mongod_args("/data", 1234, "0.0.0.0", auth=True)

        assert args[0] == "--auth"
        assert args[args.index("--bind_ip") + 1] == "0.0.0.0"
        assert args[1:] == noauth_args("/data", 1234, bind_ip="0.0.0.0")[1:]

    def test_service_name(self):
        """Test service names are namespaced."""
        assert service_name("bob-dev") == "cpboot-db-bob-dev"
        assert service_name("") == "cpboot-db"

    def test_mongod_path_override(self, monkeypatch):
        """Test $CPBOOT_MONGOD selects the binary."""
        monkeypatch.setenv("CPBOOT_MONGOD", "/opt/mongo/bin/mongod")

        assert mongod_path() == "/opt/mongo/bin/mongod"

    def test_service_conf_is_authenticated(self):
        """Test the permanent service runs with --auth."""
        conf = mongo_service_conf("/data", 37017, "bob-dev", mongod="/usr/bin/mongod")

        assert conf.cmd.startswith("/usr/bin/mongod --auth --dbpath /data/db")
        assert "--noauth" not in conf.cmd
        assert "bob-dev" in conf.desc


@pytest.mark.cli_unit
class TestEnsureServerPem:
    """Tests for server certificate generation."""

    def test_writes_key_and_cert(self, tmp_path, ca_pair):
        """Test server.pem holds a key and a certificate signed by the CA."""
        path = ensure_server_pem(tmp_path, *ca_pair)

        text = path.read_text()
        assert path == tmp_path / "server.pem"
        assert "PRIVATE KEY" in text
        assert "BEGIN CERTIFICATE" in text
        assert path.stat().st_mode & 0o777 == 0o600
        assert (tmp_path / "db").is_dir()

        cert = x509.load_pem_x509_certificate(text[text.index("-----BEGIN CERTIFICATE") :].encode())
        ca = x509.load_pem_x509_certificate(ca_pair[0].encode())
        assert cert.issuer == ca.subject

    def test_existing_file_kept(self, tmp_path, ca_pair):
        """Test an existing server.pem is not regenerated."""
        (tmp_path / "server.pem").write_text("existing")

        ensure_server_pem(tmp_path, *ca_pair)

        assert (tmp_path / "server.pem").read_text() == "existing"
