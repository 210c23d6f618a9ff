import pyotp
import pytest
from datetime import datetime, timedelta, UTC

from wealthmap.models.activity_log import ActivityLog
from wealthmap.models.company import Company
from wealthmap.models.role import UserRole
from wealthmap.models.user import User
from tests.conftest import TEST_PASSWORD, create_test_token


REGISTRATION = {
    "company_name": "Acme Realty",
    "industry": "Real estate",
    "city": "Austin",
    "state": "TX",
    "admin_email": "Founder@Acme.com",
    "admin_password": "s3cure-password",
    "admin_first_name": "Ada",
    "admin_last_name": "Founder",
}


def wrong_code(secret: str) -> str:
    return f"{(int(pyotp.TOTP(secret).now()) + 500000) % 1000000:06d}"


class TestRegisterCompany:
    """Tests for POST /api/auth/register-company"""

    def test_register_creates_company_and_admin(self, client, db_session):
        response = client.post("/api/auth/register-company", json=REGISTRATION)

        assert response.status_code == 201
        data = response.json()
        assert data["access_token"]
        assert data["token_type"] == "bearer"
        assert data["company"]["slug"] == "acme-realty"
        assert data["user"]["email"] == "founder@acme.com"
        assert data["user"]["role"] == "admin"

        company = db_session.get(Company, data["company"]["id"])
        assert company.admin_user_id == data["user"]["id"]
        assert company.invitation_expire_days == 7

    def test_token_is_usable(self, client):
        token = client.post("/api/auth/register-company", json=REGISTRATION).json()["access_token"]
        response = client.get("/api/companies/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["name"] == "Acme Realty"

    def test_slug_made_unique(self, client):
        client.post("/api/auth/register-company", json=REGISTRATION)
        second = dict(REGISTRATION, admin_email="other@acme.com")

        response = client.post("/api/auth/register-company", json=second)

        assert response.status_code == 201
        assert response.json()["company"]["slug"] == "acme-realty-2"

    def test_duplicate_email_rejected(self, client):
        client.post("/api/auth/register-company", json=REGISTRATION)
        response = client.post(
            "/api/auth/register-company", json=dict(REGISTRATION, company_name="Other Co")
        )
        assert response.status_code == 400

    def test_short_password_rejected(self, client):
        response = client.post(
            "/api/auth/register-company", json=dict(REGISTRATION, admin_password="short")
        )
        assert response.status_code == 422

    def test_registration_recorded(self, client, db_session):
        user_id = client.post("/api/auth/register-company", json=REGISTRATION).json()["user"]["id"]
        entry = (
            db_session.query(ActivityLog)
            .filter(ActivityLog.action == "company_registration")
            .one()
        )
        assert entry.user_id == user_id


class TestLogin:
    """Tests for POST /api/auth/login"""

    def login(self, client, email, password=TEST_PASSWORD, **extra):
        return client.post("/api/auth/login", json={"email": email, "password": password, **extra})

    def test_login(self, client, db_session, analyst_user):
        response = self.login(client, analyst_user.email)

        assert response.status_code == 200
        assert response.json()["user"]["id"] == analyst_user.id
        db_session.refresh(analyst_user)
        assert analyst_user.last_login_at is not None

    def test_email_case_insensitive(self, client, analyst_user):
        assert self.login(client, analyst_user.email.upper()).status_code == 200

    def test_wrong_password(self, client, db_session, analyst_user):
        response = self.login(client, analyst_user.email, password="wrong-password")

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"
        entry = (
            db_session.query(ActivityLog)
            .filter(ActivityLog.action == "failed_login_attempt")
            .one()
        )
        assert entry.user_id == analyst_user.id

    def test_unknown_email(self, client):
        response = self.login(client, "nobody@acme.com")
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    def test_deactivated_user(self, client, db_session, analyst_user):
        analyst_user.is_active = False
        db_session.commit()
        response = self.login(client, analyst_user.email)
        assert response.status_code == 403
        assert response.json()["reason"] == "account_inactive"

    def test_deactivated_company(self, client, db_session, company, analyst_user):
        company.is_active = False
        db_session.commit()
        assert self.login(client, analyst_user.email).status_code == 403


class TestMfaLogin:
    """Login for users with MFA enabled"""

    @pytest.fixture
    def mfa_user(self, db_session, analyst_user):
        analyst_user.mfa_secret = pyotp.random_base32()
        analyst_user.mfa_enabled = True
        db_session.commit()
        return analyst_user

    def login(self, client, user, **extra):
        return client.post(
            "/api/auth/login", json={"email": user.email, "password": TEST_PASSWORD, **extra}
        )

    def test_code_required(self, client, mfa_user):
        response = self.login(client, mfa_user)
        assert response.status_code == 401
        assert response.json()["reason"] == "mfa_code_required"

    def test_invalid_code(self, client, mfa_user):
        response = self.login(client, mfa_user, mfa_code=wrong_code(mfa_user.mfa_secret))
        assert response.status_code == 401
        assert response.json()["reason"] == "invalid_mfa_code"

    def test_valid_code_marks_session_verified(self, client, mfa_user):
        code = pyotp.TOTP(mfa_user.mfa_secret).now()
        response = self.login(client, mfa_user, mfa_code=code)

        assert response.status_code == 200
        token = response.json()["access_token"]
        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["mfa_verified"] is True


class TestMe:
    """Tests for GET /api/auth/me"""

    def test_me_lists_permissions(self, client, company, viewer_user, viewer_headers):
        response = client.get("/api/auth/me", headers=viewer_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["role"] == "viewer"
        assert data["company"]["id"] == company.id
        assert data["permissions"] == ["view_property"]
        assert data["mfa_verified"] is False

    def test_admin_permissions(self, client, admin_headers):
        data = client.get("/api/auth/me", headers=admin_headers).json()
        assert set(data["permissions"]) == {
            "view_property",
            "view_wealth_data",
            "view_ownership_history",
            "export_data",
            "invite_users",
        }


class TestChangePassword:
    """Tests for PUT /api/auth/password"""

    def test_change_password(self, client, db_session, analyst_user, analyst_headers):
        response = client.put(
            "/api/auth/password",
            json={"current_password": TEST_PASSWORD, "new_password": "brand-new-password"},
            headers=analyst_headers,
        )

        assert response.status_code == 200
        assert response.json()["access_token"]
        login = client.post(
            "/api/auth/login",
            json={"email": analyst_user.email, "password": "brand-new-password"},
        )
        assert login.status_code == 200

    def test_old_tokens_become_stale(self, client, analyst_user):
        """A token issued before the change is rejected afterwards"""
        old_token = create_test_token(
            analyst_user.id,
            company_id=analyst_user.company_id,
            issued_at=datetime.now(UTC) - timedelta(minutes=1),
        )
        headers = {"Authorization": f"Bearer {old_token}"}
        client.put(
            "/api/auth/password",
            json={"current_password": TEST_PASSWORD, "new_password": "brand-new-password"},
            headers=headers,
        )

        response = client.get("/api/auth/me", headers=headers)

        assert response.status_code == 401
        assert response.json()["reason"] == "stale_password"

    def test_wrong_current_password(self, client, analyst_headers):
        response = client.put(
            "/api/auth/password",
            json={"current_password": "not-my-password", "new_password": "brand-new-password"},
            headers=analyst_headers,
        )
        assert response.status_code == 400
        assert response.json()["reason"] == "invalid_password"

    def test_same_password_rejected(self, client, analyst_headers):
        response = client.put(
            "/api/auth/password",
            json={"current_password": TEST_PASSWORD, "new_password": TEST_PASSWORD},
            headers=analyst_headers,
        )
        assert response.status_code == 400


def test_registered_admin_role(db_session, client):
    """Registration stores the admin role on the user row"""
    client.post("/api/auth/register-company", json=REGISTRATION)
    user = db_session.query(User).filter(User.email == "founder@acme.com").one()
    assert user.role == UserRole.ADMIN
