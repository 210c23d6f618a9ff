import pyotp
import pytest

from wealthmap.models.activity_log import ActivityLog
from tests.conftest import headers_for


def enroll(client, headers) -> str:
    """Run setup and enable; returns the secret"""
    secret = client.post("/api/mfa/setup", headers=headers).json()["secret"]
    response = client.post(
        "/api/mfa/enable", json={"code": pyotp.TOTP(secret).now()}, headers=headers
    )
    assert response.status_code == 200
    return secret


class TestMfaEnrolment:
    """Tests for /api/mfa/setup and /api/mfa/enable"""

    def test_setup_returns_secret(self, client, db_session, analyst_user, analyst_headers):
        response = client.post("/api/mfa/setup", headers=analyst_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["provisioning_uri"].startswith("otpauth://totp/")
        db_session.refresh(analyst_user)
        assert analyst_user.mfa_secret == data["secret"]
        assert analyst_user.mfa_enabled is False

    def test_enable_with_valid_code(self, client, db_session, analyst_user, analyst_headers):
        secret = client.post("/api/mfa/setup", headers=analyst_headers).json()["secret"]

        response = client.post(
            "/api/mfa/enable", json={"code": pyotp.TOTP(secret).now()}, headers=analyst_headers
        )

        assert response.status_code == 200
        token = response.json()["access_token"]
        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["mfa_verified"] is True
        db_session.refresh(analyst_user)
        assert analyst_user.mfa_enabled is True
        assert db_session.query(ActivityLog).filter(ActivityLog.action == "user_mfa_enabled").count() == 1

    def test_enable_with_invalid_code(self, client, analyst_headers):
        secret = client.post("/api/mfa/setup", headers=analyst_headers).json()["secret"]
        bad = f"{(int(pyotp.TOTP(secret).now()) + 500000) % 1000000:06d}"

        response = client.post("/api/mfa/enable", json={"code": bad}, headers=analyst_headers)

        assert response.status_code == 400
        assert response.json()["reason"] == "invalid_mfa_code"

    def test_enable_without_setup(self, client, analyst_headers):
        response = client.post("/api/mfa/enable", json={"code": "123456"}, headers=analyst_headers)
        assert response.status_code == 400

    def test_malformed_code(self, client, analyst_headers):
        response = client.post("/api/mfa/enable", json={"code": "12ab56"}, headers=analyst_headers)
        assert response.status_code == 422

    def test_setup_when_enabled(self, client, analyst_headers):
        enroll(client, analyst_headers)
        assert client.post("/api/mfa/setup", headers=analyst_headers).status_code == 400

    def test_status(self, client, analyst_headers):
        response = client.get("/api/mfa/status", headers=analyst_headers)
        assert response.json() == {
            "enabled": False,
            "required_by_company": False,
            "session_verified": False,
        }


class TestMfaDisable:
    """Tests for POST /api/mfa/disable"""

    def test_disable(self, client, db_session, analyst_user, analyst_headers):
        secret = enroll(client, analyst_headers)

        response = client.post(
            "/api/mfa/disable", json={"code": pyotp.TOTP(secret).now()}, headers=analyst_headers
        )

        assert response.status_code == 204
        db_session.refresh(analyst_user)
        assert analyst_user.mfa_enabled is False
        assert analyst_user.mfa_secret is None

    def test_disable_forbidden_when_company_requires(
        self, client, db_session, company, analyst_user, analyst_headers
    ):
        secret = enroll(client, analyst_headers)
        company.require_mfa = True
        db_session.commit()

        response = client.post(
            "/api/mfa/disable", json={"code": pyotp.TOTP(secret).now()}, headers=analyst_headers
        )

        assert response.status_code == 403
        assert response.json()["reason"] == "mfa_required"

    def test_disable_when_not_enabled(self, client, analyst_headers):
        response = client.post("/api/mfa/disable", json={"code": "123456"}, headers=analyst_headers)
        assert response.status_code == 400


class TestCompanyRequiresMfa:
    """With require_mfa set, data access needs an MFA-verified session"""

    @pytest.fixture(autouse=True)
    def require_mfa(self, db_session, company):
        company.require_mfa = True
        db_session.commit()

    def test_unverified_session_denied(self, client, analyst_headers, properties):
        response = client.get("/api/properties", headers=analyst_headers)
        assert response.status_code == 403
        assert response.json()["reason"] == "mfa_required"

    def test_verified_session_allowed(self, client, analyst_user, properties):
        response = client.get("/api/properties", headers=headers_for(analyst_user, mfa=True))
        assert response.status_code == 200

    def test_enrolment_still_possible(self, client, analyst_headers):
        """Users can enrol while their session is unverified"""
        enroll(client, analyst_headers)

    def test_status_reports_requirement(self, client, analyst_headers):
        response = client.get("/api/mfa/status", headers=analyst_headers)
        assert response.json()["required_by_company"] is True
