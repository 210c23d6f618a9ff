import pytest

from wealthmap.models.activity_log import ActivityLog


class TestProfile:
    """Tests for /api/profile"""

    def test_get_profile(self, client, analyst_user, analyst_headers):
        response = client.get("/api/profile", headers=analyst_headers)
        assert response.status_code == 200
        assert response.json()["email"] == analyst_user.email
        assert response.json()["role"] == "analyst"

    def test_update_profile(self, client, analyst_headers):
        response = client.put(
            "/api/profile",
            json={"first_name": "Anna", "notify_email": False},
            headers=analyst_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["first_name"] == "Anna"
        assert data["notify_email"] is False
        assert data["last_name"] == "Tester"

    def test_role_not_editable(self, client, analyst_headers):
        """Unknown fields such as role are ignored"""
        response = client.put("/api/profile", json={"role": "admin"}, headers=analyst_headers)
        assert response.json()["role"] == "analyst"

    def test_accept_terms(self, client, analyst_headers):
        response = client.post("/api/profile/accept-terms", headers=analyst_headers)
        assert response.json()["accepted_terms"] is True

    def test_complete_onboarding(self, client, analyst_headers):
        response = client.post("/api/profile/complete-onboarding", headers=analyst_headers)
        assert response.json()["completed_onboarding"] is True


class TestBookmarks:
    """Tests for /api/profile/bookmarks"""

    def test_add_and_list(self, client, analyst_headers, properties):
        property_id = properties["main_st"].id

        response = client.post(
            "/api/profile/bookmarks", json={"property_id": property_id}, headers=analyst_headers
        )

        assert response.status_code == 201
        assert response.json()["street"] == "1 Main St"
        listed = client.get("/api/profile/bookmarks", headers=analyst_headers).json()
        assert [b["property_id"] for b in listed] == [property_id]

    def test_duplicate_bookmark(self, client, analyst_headers, properties):
        body = {"property_id": properties["main_st"].id}
        client.post("/api/profile/bookmarks", json=body, headers=analyst_headers)
        response = client.post("/api/profile/bookmarks", json=body, headers=analyst_headers)
        assert response.status_code == 400

    def test_bookmark_outside_policy(self, client, analyst_headers, properties):
        response = client.post(
            "/api/profile/bookmarks",
            json={"property_id": properties["ranch_rd"].id},
            headers=analyst_headers,
        )
        assert response.status_code == 404

    def test_bookmarks_are_private(self, client, analyst_headers, viewer_headers, properties):
        client.post(
            "/api/profile/bookmarks",
            json={"property_id": properties["main_st"].id},
            headers=analyst_headers,
        )
        assert client.get("/api/profile/bookmarks", headers=viewer_headers).json() == []

    def test_remove_bookmark(self, client, db_session, analyst_headers, properties):
        property_id = properties["main_st"].id
        client.post("/api/profile/bookmarks", json={"property_id": property_id}, headers=analyst_headers)

        response = client.delete(f"/api/profile/bookmarks/{property_id}", headers=analyst_headers)

        assert response.status_code == 204
        assert client.get("/api/profile/bookmarks", headers=analyst_headers).json() == []
        actions = {a for (a,) in db_session.query(ActivityLog.action).all()}
        assert {"property_bookmark", "property_unbookmark"} <= actions

    def test_remove_missing_bookmark(self, client, analyst_headers, properties):
        response = client.delete(
            f"/api/profile/bookmarks/{properties['main_st'].id}", headers=analyst_headers
        )
        assert response.status_code == 404


class TestSavedSearches:
    """Tests for /api/profile/saved-searches"""

    def test_create_and_list(self, client, analyst_headers):
        response = client.post(
            "/api/profile/saved-searches",
            json={
                "name": "Austin commercial",
                "query": "austin",
                "filters": {"property_types": ["commercial"], "min_value": 1000000},
            },
            headers=analyst_headers,
        )

        assert response.status_code == 201
        assert response.json()["filters"] == {
            "property_types": ["commercial"],
            "min_value": 1000000.0,
            "query": "austin",
        }
        listed = client.get("/api/profile/saved-searches", headers=analyst_headers).json()
        assert [s["name"] for s in listed] == ["Austin commercial"]

    def test_delete(self, client, analyst_headers):
        search_id = client.post(
            "/api/profile/saved-searches", json={"name": "All"}, headers=analyst_headers
        ).json()["id"]

        response = client.delete(f"/api/profile/saved-searches/{search_id}", headers=analyst_headers)

        assert response.status_code == 204
        assert client.get("/api/profile/saved-searches", headers=analyst_headers).json() == []

    def test_cannot_delete_someone_elses(self, client, analyst_headers, viewer_headers):
        search_id = client.post(
            "/api/profile/saved-searches", json={"name": "Mine"}, headers=analyst_headers
        ).json()["id"]

        response = client.delete(f"/api/profile/saved-searches/{search_id}", headers=viewer_headers)

        assert response.status_code == 404
