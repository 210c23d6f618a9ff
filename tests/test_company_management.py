import pytest

from wealthmap.models.activity_log import ActivityLog
from wealthmap.models.role import UserRole


class TestCompanyProfile:
    """Tests for GET/PATCH /api/companies/me"""

    def test_any_member_can_read(self, client, company, viewer_headers):
        response = client.get("/api/companies/me", headers=viewer_headers)
        assert response.status_code == 200
        assert response.json()["id"] == company.id

    def test_admin_updates_profile(self, client, admin_headers):
        response = client.patch(
            "/api/companies/me",
            json={"website": "https://acme.example", "industry": "Brokerage"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["website"] == "https://acme.example"
        assert data["industry"] == "Brokerage"
        assert data["name"] == "Acme Realty"

    def test_manager_cannot_update(self, client, manager_headers):
        response = client.patch("/api/companies/me", json={"name": "Hijack"}, headers=manager_headers)
        assert response.status_code == 403
        assert response.json()["reason"] == "insufficient_role"

    def test_decisions_recorded(self, client, db_session, manager_user, admin_headers, manager_headers):
        """Both allowed and denied attempts reach the activity log"""
        client.patch("/api/companies/me", json={"industry": "X"}, headers=admin_headers)
        client.patch("/api/companies/me", json={"industry": "Y"}, headers=manager_headers)

        entries = (
            db_session.query(ActivityLog)
            .filter(ActivityLog.action == "manage_company")
            .order_by(ActivityLog.id)
            .all()
        )
        assert [e.details["decision"] for e in entries] == ["allow", "deny"]
        assert entries[1].user_id == manager_user.id
        assert entries[1].details["reason"] == "insufficient_role"


class TestDataAccess:
    """Tests for GET/PUT /api/companies/me/data-access"""

    def test_read_defaults(self, client, analyst_headers):
        response = client.get("/api/companies/me/data-access", headers=analyst_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["allowed_property_types"] == ["residential", "commercial", "industrial"]
        assert data["wealth_data_access"] is True
        assert data["geographic_restrictions"] is None

    def test_admin_updates_policy(self, client, admin_headers):
        response = client.put(
            "/api/companies/me/data-access",
            json={
                "allowed_property_types": ["residential", "land"],
                "wealth_data_access": False,
                "max_value_threshold": 2_000_000,
                "geographic_restrictions": {"states": ["tx", "fl"]},
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["allowed_property_types"] == ["residential", "land"]
        assert data["wealth_data_access"] is False
        assert data["max_value_threshold"] == 2_000_000
        assert data["geographic_restrictions"]["states"] == ["TX", "FL"]
        # Untouched fields keep their values
        assert data["export_enabled"] is True

    def test_partial_geographic_restrictions(self, client, admin_headers):
        """Omitted restriction lists default to empty"""
        response = client.put(
            "/api/companies/me/data-access",
            json={"geographic_restrictions": {"states": ["tx"]}},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["geographic_restrictions"] == {
            "states": ["TX"],
            "countries": [],
            "zip_codes": [],
        }

    def test_inverted_thresholds_rejected(self, client, admin_headers):
        response = client.put(
            "/api/companies/me/data-access",
            json={"min_value_threshold": 500_000, "max_value_threshold": 100_000},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_manager_cannot_update(self, client, manager_headers):
        response = client.put(
            "/api/companies/me/data-access", json={"export_enabled": False}, headers=manager_headers
        )
        assert response.status_code == 403

    def test_invalid_expire_days(self, client, admin_headers):
        response = client.put(
            "/api/companies/me/data-access", json={"invitation_expire_days": 0}, headers=admin_headers
        )
        assert response.status_code == 422

    def test_policy_change_applies_to_next_request(
        self, client, admin_headers, analyst_headers, properties
    ):
        """Members see the new policy without logging in again"""
        before = client.get("/api/properties", headers=analyst_headers).json()["total"]
        client.put(
            "/api/companies/me/data-access",
            json={"allowed_property_types": ["residential"]},
            headers=admin_headers,
        )
        after = client.get("/api/properties", headers=analyst_headers).json()
        assert after["total"] < before
        assert {p["property_type"] for p in after["properties"]} == {"residential"}


class TestEmployees:
    """Tests for /api/companies/me/employees"""

    def test_manager_lists_employees(self, client, admin_user, manager_user, analyst_user, manager_headers):
        response = client.get("/api/companies/me/employees", headers=manager_headers)
        assert response.status_code == 200
        assert {e["id"] for e in response.json()} == {admin_user.id, manager_user.id, analyst_user.id}

    def test_list_excludes_other_company(self, client, admin_headers, other_admin):
        ids = {e["id"] for e in client.get("/api/companies/me/employees", headers=admin_headers).json()}
        assert other_admin.id not in ids

    def test_analyst_cannot_list(self, client, analyst_headers):
        assert client.get("/api/companies/me/employees", headers=analyst_headers).status_code == 403

    def test_admin_changes_role(self, client, analyst_user, admin_headers):
        response = client.patch(
            f"/api/companies/me/employees/{analyst_user.id}",
            json={"role": "manager"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["role"] == "manager"

    def test_admin_deactivates_employee(self, client, analyst_user, admin_headers, analyst_headers):
        response = client.patch(
            f"/api/companies/me/employees/{analyst_user.id}",
            json={"is_active": False},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert client.get("/api/auth/me", headers=analyst_headers).status_code == 403

    def test_permission_overrides(self, client, analyst_user, admin_headers, analyst_headers):
        client.patch(
            f"/api/companies/me/employees/{analyst_user.id}",
            json={"permission_overrides": {"export_data": False}},
            headers=admin_headers,
        )
        permissions = client.get("/api/auth/me", headers=analyst_headers).json()["permissions"]
        assert "export_data" not in permissions

    def test_unknown_permission_override(self, client, analyst_user, admin_headers):
        response = client.patch(
            f"/api/companies/me/employees/{analyst_user.id}",
            json={"permission_overrides": {"launch_rockets": True}},
            headers=admin_headers,
        )
        assert response.status_code == 422

    def test_admin_cannot_demote_self(self, client, admin_user, admin_headers):
        response = client.patch(
            f"/api/companies/me/employees/{admin_user.id}",
            json={"role": "viewer"},
            headers=admin_headers,
        )
        assert response.status_code == 403
        assert response.json()["reason"] == "self_modification_forbidden"

    def test_admin_cannot_deactivate_self(self, client, admin_user, admin_headers):
        response = client.patch(
            f"/api/companies/me/employees/{admin_user.id}",
            json={"is_active": False},
            headers=admin_headers,
        )
        assert response.status_code == 403
        assert response.json()["reason"] == "self_modification_forbidden"

    def test_admin_may_update_own_overrides(self, client, admin_user, admin_headers):
        response = client.patch(
            f"/api/companies/me/employees/{admin_user.id}",
            json={"permission_overrides": {"export_data": False}},
            headers=admin_headers,
        )
        assert response.status_code == 200

    def test_cross_tenant_update_forbidden(self, client, db_session, other_admin, admin_headers):
        response = client.patch(
            f"/api/companies/me/employees/{other_admin.id}",
            json={"is_active": False},
            headers=admin_headers,
        )
        assert response.status_code == 403
        assert response.json()["reason"] == "cross_tenant_forbidden"
        db_session.refresh(other_admin)
        assert other_admin.is_active is True

    def test_manager_cannot_update(self, client, analyst_user, manager_headers):
        response = client.patch(
            f"/api/companies/me/employees/{analyst_user.id}",
            json={"role": "viewer"},
            headers=manager_headers,
        )
        assert response.status_code == 403

    def test_unknown_user(self, client, admin_headers):
        response = client.patch(
            "/api/companies/me/employees/9999", json={"role": "viewer"}, headers=admin_headers
        )
        assert response.status_code == 404


class TestUsageAndActivity:
    """Tests for /api/companies/me/usage-stats and /api/companies/me/activity"""

    def test_usage_stats(self, client, admin_headers, analyst_user, properties):
        client.post("/api/invitations", json={"email": "pending@acme.com"}, headers=admin_headers)

        response = client.get("/api/companies/me/usage-stats", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_users"] == 2
        assert data["active_users"] == 2
        assert data["pending_invitations"] == 1
        assert data["exports_this_month"] == 0
        # Land is outside the default allowlist
        assert data["visible_properties_by_type"] == {
            "residential": 2,
            "commercial": 1,
            "industrial": 1,
        }

    def test_usage_stats_admin_only(self, client, manager_headers):
        assert client.get("/api/companies/me/usage-stats", headers=manager_headers).status_code == 403

    def test_activity_log(self, client, admin_user, admin_headers):
        client.patch("/api/companies/me", json={"industry": "X"}, headers=admin_headers)

        response = client.get("/api/companies/me/activity?action=manage_company", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["activities"][0]["user_id"] == admin_user.id

    def test_activity_log_scoped_to_company(self, client, admin_headers, other_admin_headers):
        client.patch("/api/companies/me", json={"industry": "X"}, headers=other_admin_headers)
        response = client.get("/api/companies/me/activity?action=manage_company", headers=admin_headers)
        assert response.json()["total"] == 0

    def test_activity_log_admin_only(self, client, analyst_headers):
        assert client.get("/api/companies/me/activity", headers=analyst_headers).status_code == 403
