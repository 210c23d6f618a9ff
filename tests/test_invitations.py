import pytest
from datetime import timedelta
from sqlalchemy.exc import IntegrityError

from wealthmap.core.clock import utcnow
from wealthmap.models.activity_log import ActivityLog
from wealthmap.models.invitation import Invitation, InvitationStatus
from wealthmap.models.role import UserRole
from wealthmap.models.user import User
from wealthmap.repositories.invitation_repository import InvitationRepository
from tests.conftest import make_user


def invite(client, headers, email="new.hire@acme.com", role="analyst", **extra):
    return client.post(
        "/api/invitations", json={"email": email, "role": role, **extra}, headers=headers
    )


@pytest.fixture
def pending_invitation(client, admin_headers):
    response = invite(client, admin_headers, first_name="New", last_name="Hire")
    assert response.status_code == 201
    return response.json()


class TestCreateInvitation:
    """Tests for POST /api/invitations"""

    def test_admin_creates_invitation(self, client, admin_user, admin_headers, company):
        """Admin invites an employee; the link carries the token"""
        response = invite(client, admin_headers, message="Welcome aboard")

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "new.hire@acme.com"
        assert data["role"] == "analyst"
        assert data["status"] == "pending"
        assert data["company_id"] == company.id
        assert data["invited_by_id"] == admin_user.id
        assert data["resend_count"] == 0
        assert len(data["token"]) == 64
        assert data["invitation_url"].endswith(f"token={data['token']}")

    def test_expiry_follows_company_setting(self, client, db_session, company, admin_headers):
        company.invitation_expire_days = 3
        db_session.commit()

        response = invite(client, admin_headers)

        invitation = db_session.get(Invitation, response.json()["id"])
        remaining = invitation.expires_at - utcnow()
        assert timedelta(days=2, hours=23) < remaining <= timedelta(days=3)

    def test_email_normalized(self, client, admin_headers):
        response = invite(client, admin_headers, email="New.Hire@ACME.com")
        assert response.json()["email"] == "new.hire@acme.com"

    def test_default_role_is_viewer(self, client, admin_headers):
        response = client.post(
            "/api/invitations", json={"email": "someone@acme.com"}, headers=admin_headers
        )
        assert response.json()["role"] == "viewer"

    def test_manager_can_invite(self, client, manager_headers):
        assert invite(client, manager_headers).status_code == 201

    def test_manager_cannot_invite_admin(self, client, manager_headers):
        response = invite(client, manager_headers, role="admin")
        assert response.status_code == 403
        assert response.json()["reason"] == "insufficient_role"

    def test_admin_can_invite_admin(self, client, admin_headers):
        assert invite(client, admin_headers, role="admin").status_code == 201

    @pytest.mark.parametrize("headers_fixture", ["analyst_headers", "viewer_headers"])
    def test_below_manager_forbidden(self, client, request, headers_fixture):
        response = invite(client, request.getfixturevalue(headers_fixture))
        assert response.status_code == 403
        assert response.json()["reason"] == "insufficient_role"

    def test_manager_without_invite_permission(self, client, db_session, manager_user, manager_headers):
        """A False override removes invite_users even from a manager"""
        manager_user.permission_overrides = {"invite_users": False}
        db_session.commit()

        response = invite(client, manager_headers)

        assert response.status_code == 403
        assert response.json()["reason"] == "permission_denied"

    def test_existing_user_email_rejected(self, client, admin_headers, analyst_user):
        response = invite(client, admin_headers, email=analyst_user.email)
        assert response.status_code == 400

    def test_duplicate_pending_conflicts(self, client, admin_headers, pending_invitation):
        response = invite(client, admin_headers)
        assert response.status_code == 409
        assert response.json()["reason"] == "duplicate_pending_invitation"

    def test_concurrent_duplicate_conflicts(
        self, client, db_session, monkeypatch, admin_headers, pending_invitation
    ):
        """The unique index catches a duplicate the pending lookup missed"""
        monkeypatch.setattr(InvitationRepository, "get_pending", lambda self, email, company_id: None)

        response = invite(client, admin_headers)

        assert response.status_code == 409
        assert response.json()["reason"] == "duplicate_pending_invitation"
        pending = (
            db_session.query(Invitation)
            .filter(Invitation.status == InvitationStatus.PENDING)
            .count()
        )
        assert pending == 1

    def test_second_pending_row_rejected_by_storage(
        self, db_session, company, admin_user, pending_invitation
    ):
        db_session.add(
            Invitation(
                email=pending_invitation["email"],
                company_id=company.id,
                invited_by_id=admin_user.id,
                role=UserRole.ANALYST,
                token="f" * 64,
                status=InvitationStatus.PENDING,
                expires_at=utcnow() + timedelta(days=7),
            )
        )
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_reinvite_after_revoke(self, client, admin_headers, pending_invitation):
        client.post(f"/api/invitations/{pending_invitation['id']}/revoke", headers=admin_headers)

        response = invite(client, admin_headers)

        assert response.status_code == 201
        assert response.json()["id"] != pending_invitation["id"]

    def test_reinvite_after_expiry(self, client, db_session, admin_headers, pending_invitation):
        """An overdue pending invitation is expired and replaced"""
        old = db_session.get(Invitation, pending_invitation["id"])
        old.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        response = invite(client, admin_headers)

        assert response.status_code == 201
        db_session.refresh(old)
        assert old.status == InvitationStatus.EXPIRED

    def test_same_email_other_company_allowed(self, client, admin_headers, other_admin_headers, pending_invitation):
        """Pending uniqueness is per company"""
        assert invite(client, other_admin_headers).status_code == 201

    def test_invitation_recorded(self, client, db_session, admin_user, pending_invitation):
        entry = (
            db_session.query(ActivityLog)
            .filter(ActivityLog.action == "user_invitation")
            .one()
        )
        assert entry.user_id == admin_user.id
        assert entry.details["invitation_id"] == pending_invitation["id"]

    def test_recorded_email_matches_stored(self, client, db_session, admin_headers):
        response = invite(client, admin_headers, email="Mixed.Case@ACME.com")

        stored = response.json()["email"]
        details = [
            entry.details
            for entry in db_session.query(ActivityLog)
            .filter(ActivityLog.action.in_(["invite_user", "user_invitation"]))
            .all()
        ]
        assert len(details) == 2
        assert {d["email"] for d in details} == {stored}


class TestListInvitations:
    """Tests for GET /api/invitations"""

    def test_list(self, client, admin_headers, pending_invitation):
        response = client.get("/api/invitations", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 1
        assert "token" not in response.json()["invitations"][0]

    def test_overdue_reported_expired(self, client, db_session, admin_headers, pending_invitation):
        invitation = db_session.get(Invitation, pending_invitation["id"])
        invitation.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()

        response = client.get("/api/invitations", headers=admin_headers)

        assert response.json()["invitations"][0]["status"] == "expired"
        db_session.refresh(invitation)
        assert invitation.status == InvitationStatus.EXPIRED

    def test_status_filter(self, client, admin_headers, pending_invitation):
        response = client.get("/api/invitations?status=revoked", headers=admin_headers)
        assert response.json()["total"] == 0
        response = client.get("/api/invitations?status=pending", headers=admin_headers)
        assert response.json()["total"] == 1

    def test_other_company_sees_nothing(self, client, other_admin_headers, pending_invitation):
        response = client.get("/api/invitations", headers=other_admin_headers)
        assert response.json()["total"] == 0

    def test_analyst_forbidden(self, client, analyst_headers):
        assert client.get("/api/invitations", headers=analyst_headers).status_code == 403


class TestResendAndRevoke:
    """Tests for POST /api/invitations/{id}/resend and /revoke"""

    def test_resend_rotates_token(self, client, manager_headers, pending_invitation):
        response = client.post(
            f"/api/invitations/{pending_invitation['id']}/resend", headers=manager_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["resend_count"] == 1
        assert data["token"] != pending_invitation["token"]
        assert data["last_resent_at"] is not None

    def test_old_token_invalid_after_resend(self, client, admin_headers, pending_invitation):
        client.post(f"/api/invitations/{pending_invitation['id']}/resend", headers=admin_headers)
        response = client.get(f"/api/invitations/token/{pending_invitation['token']}")
        assert response.status_code == 404

    def test_resend_expired_conflicts(self, client, db_session, admin_headers, pending_invitation):
        invitation = db_session.get(Invitation, pending_invitation["id"])
        invitation.expires_at = utcnow() - timedelta(days=1)
        db_session.commit()

        response = client.post(
            f"/api/invitations/{pending_invitation['id']}/resend", headers=admin_headers
        )

        assert response.status_code == 409
        db_session.refresh(invitation)
        assert invitation.status == InvitationStatus.EXPIRED

    def test_admin_revokes(self, client, admin_headers, pending_invitation):
        response = client.post(
            f"/api/invitations/{pending_invitation['id']}/revoke", headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "revoked"

    def test_revoke_twice_conflicts(self, client, admin_headers, pending_invitation):
        url = f"/api/invitations/{pending_invitation['id']}/revoke"
        client.post(url, headers=admin_headers)
        response = client.post(url, headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["reason"] == "invitation_already_resolved"

    def test_manager_cannot_revoke(self, client, manager_headers, pending_invitation):
        response = client.post(
            f"/api/invitations/{pending_invitation['id']}/revoke", headers=manager_headers
        )
        assert response.status_code == 403
        assert response.json()["reason"] == "insufficient_role"

    def test_other_company_admin_cannot_revoke(self, client, other_admin_headers, pending_invitation):
        response = client.post(
            f"/api/invitations/{pending_invitation['id']}/revoke", headers=other_admin_headers
        )
        assert response.status_code == 403
        assert response.json()["reason"] == "cross_tenant_forbidden"

    def test_unknown_invitation(self, client, admin_headers):
        response = client.post("/api/invitations/9999/revoke", headers=admin_headers)
        assert response.status_code == 404


class TestPreview:
    """Tests for GET /api/invitations/token/{token} (public)"""

    def test_preview(self, client, admin_user, company, pending_invitation):
        response = client.get(f"/api/invitations/token/{pending_invitation['token']}")
        assert response.status_code == 200
        data = response.json()
        assert data["company_name"] == company.name
        assert data["invited_by_name"] == admin_user.full_name
        assert data["status"] == "pending"

    def test_unknown_token(self, client):
        assert client.get("/api/invitations/token/nope").status_code == 404


class TestAcceptInvitation:
    """Tests for POST /api/invitations/accept (public)"""

    def accept(self, client, token, password="a-new-password"):
        return client.post("/api/invitations/accept", json={"token": token, "password": password})

    def test_accept_creates_user(self, client, db_session, company, pending_invitation):
        response = self.accept(client, pending_invitation["token"])

        assert response.status_code == 201
        data = response.json()
        assert data["access_token"]
        assert data["user"]["email"] == "new.hire@acme.com"
        assert data["user"]["role"] == "analyst"
        assert data["user"]["first_name"] == "New"

        user = db_session.query(User).filter(User.email == "new.hire@acme.com").one()
        assert user.company_id == company.id
        invitation = db_session.get(Invitation, pending_invitation["id"])
        db_session.refresh(invitation)
        assert invitation.status == InvitationStatus.ACCEPTED
        assert invitation.accepted_at is not None

    def test_new_user_can_log_in(self, client, pending_invitation):
        self.accept(client, pending_invitation["token"], password="a-new-password")
        response = client.post(
            "/api/auth/login", json={"email": "new.hire@acme.com", "password": "a-new-password"}
        )
        assert response.status_code == 200

    def test_token_works_immediately(self, client, pending_invitation):
        token = self.accept(client, pending_invitation["token"]).json()["access_token"]
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["user"]["role"] == "analyst"

    def test_accept_twice_conflicts(self, client, pending_invitation):
        self.accept(client, pending_invitation["token"])
        response = self.accept(client, pending_invitation["token"])
        assert response.status_code == 409
        assert response.json()["reason"] == "invitation_already_resolved"

    def test_accept_expired(self, client, db_session, pending_invitation):
        """Late acceptance fails and the invitation is stored as expired"""
        invitation = db_session.get(Invitation, pending_invitation["id"])
        invitation.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        response = self.accept(client, pending_invitation["token"])

        assert response.status_code == 409
        assert response.json()["reason"] == "invitation_expired"
        db_session.refresh(invitation)
        assert invitation.status == InvitationStatus.EXPIRED
        assert db_session.query(User).filter(User.email == "new.hire@acme.com").first() is None

    def test_accept_revoked(self, client, admin_headers, pending_invitation):
        client.post(f"/api/invitations/{pending_invitation['id']}/revoke", headers=admin_headers)
        assert self.accept(client, pending_invitation["token"]).status_code == 409

    def test_unknown_token(self, client):
        assert self.accept(client, "missing-token").status_code == 404

    def test_short_password_rejected(self, client, pending_invitation):
        assert self.accept(client, pending_invitation["token"], password="short").status_code == 422

    def test_failed_account_creation_keeps_invitation_pending(
        self, client, db_session, company, pending_invitation
    ):
        """If the user cannot be created, the invitation is not consumed"""
        make_user(db_session, company, UserRole.VIEWER, "new.hire@acme.com")

        response = self.accept(client, pending_invitation["token"])

        assert response.status_code == 400
        invitation = db_session.get(Invitation, pending_invitation["id"])
        db_session.refresh(invitation)
        assert invitation.status == InvitationStatus.PENDING

    def test_inactive_company(self, client, db_session, company, pending_invitation):
        company.is_active = False
        db_session.commit()

        response = self.accept(client, pending_invitation["token"])

        assert response.status_code == 403
        invitation = db_session.get(Invitation, pending_invitation["id"])
        db_session.refresh(invitation)
        assert invitation.status == InvitationStatus.PENDING

    def test_acceptance_recorded(self, client, db_session, pending_invitation):
        user_id = self.accept(client, pending_invitation["token"]).json()["user"]["id"]
        entry = (
            db_session.query(ActivityLog)
            .filter(ActivityLog.action == "user_invitation_accepted")
            .one()
        )
        assert entry.user_id == user_id
