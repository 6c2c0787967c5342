"""Tests for TOTP secret generation, code validation and QR rendering."""

import base64
from urllib.parse import parse_qs, unquote, urlparse

import pyotp
import pytest

from mfa_guard.services.ports import ProvisioningRenderer
from mfa_guard.services.totp_service import QRCodeRenderer, TOTPService

svc = TOTPService

# Any fixed instant works; codes are computed for it explicitly
NOW = 1_700_000_000


@pytest.mark.unit
class TestGenerateSecret:
    def test_secret_is_32_char_base32(self):
        secret, _ = svc.generate_secret("auditor@phoenixgrc.io", "PhoenixGRC")

        assert len(secret) == 32
        base64.b32decode(secret)

    def test_secrets_are_unique(self):
        secrets = {svc.generate_secret("a@b.io", "PhoenixGRC")[0] for _ in range(20)}
        assert len(secrets) == 20

    def test_provisioning_uri_carries_account_issuer_and_secret(self):
        secret, uri = svc.generate_secret("auditor@phoenixgrc.io", "PhoenixGRC")
        parsed = urlparse(uri)
        query = parse_qs(parsed.query)

        assert parsed.scheme == "otpauth"
        assert parsed.netloc == "totp"
        assert unquote(parsed.path) == "/PhoenixGRC:auditor@phoenixgrc.io"
        assert query["secret"] == [secret]
        assert query["issuer"] == ["PhoenixGRC"]


@pytest.mark.unit
class TestValidateCode:
    @pytest.fixture
    def secret(self):
        return pyotp.random_base32(32)

    def test_current_code_accepted(self, secret):
        code = pyotp.TOTP(secret).at(NOW)
        assert svc.validate_code(code, secret, at=NOW) is True

    @pytest.mark.parametrize("offset", [-30, 30])
    def test_adjacent_step_accepted(self, secret, offset):
        code = pyotp.TOTP(secret).at(NOW + offset)
        assert svc.validate_code(code, secret, at=NOW) is True

    @pytest.mark.parametrize("offset", [-90, 90])
    def test_distant_step_rejected(self, secret, offset):
        code = pyotp.TOTP(secret).at(NOW + offset)
        assert svc.validate_code(code, secret, at=NOW) is False

    def test_code_for_other_secret_rejected(self, secret):
        other = pyotp.random_base32(32)
        assert svc.validate_code(pyotp.TOTP(other).at(NOW), secret, at=NOW) is False

    def test_surrounding_spaces_ignored(self, secret):
        code = pyotp.TOTP(secret).at(NOW)
        assert svc.validate_code(f" {code[:3]} {code[3:]} ", secret, at=NOW) is True

    @pytest.mark.parametrize("code", ["", "12345", "1234567", "12a456", None])
    def test_malformed_code_rejected(self, secret, code):
        assert svc.validate_code(code, secret, at=NOW) is False


@pytest.mark.unit
def test_qr_renderer_returns_png_data_uri():
    _, uri = svc.generate_secret("auditor@phoenixgrc.io", "PhoenixGRC")

    rendered = QRCodeRenderer().render(uri)

    assert rendered.startswith("data:image/png;base64,")
    png = base64.b64decode(rendered.split(",", 1)[1])
    assert png[:8] == b"\x89PNG\r\n\x1a\n"


@pytest.mark.unit
def test_qr_renderer_satisfies_port():
    assert isinstance(QRCodeRenderer(), ProvisioningRenderer)
