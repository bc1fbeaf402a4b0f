"""
Integration tests for the caller's profile and unavailability endpoints.
"""

from datetime import date


class TestMe:
    def test_first_request_provisions_user(self, test_client, auth_headers):
        headers = auth_headers(
            "idp|new-user",
            email="kit@example.com",
            user_metadata={"first_name": "Kit", "last_name": "Lane"},
        )
        response = test_client.get("/api/users/me", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["guid"].startswith("usr_")
        assert data["user"]["email"] == "kit@example.com"
        assert data["user"]["first_name"] == "Kit"
        assert data["user"]["profile_completed"] is False
        assert data["memberships"] == []

        again = test_client.get("/api/users/me", headers=headers)
        assert again.json()["user"]["guid"] == data["user"]["guid"]

    def test_memberships_listed(self, test_client, auth_headers, make_user, make_group):
        sam = make_user()
        group = make_group(sam, name="The Night Owls")
        response = test_client.get("/api/users/me", headers=auth_headers(sam))
        [membership] = response.json()["memberships"]
        assert membership["group_guid"] == group.guid
        assert membership["group_name"] == "The Night Owls"
        assert membership["role"] == "owner"

    def test_update_profile(self, test_client, auth_headers, make_user):
        sam = make_user()
        response = test_client.put(
            "/api/users/me",
            json={
                "first_name": "Sam",
                "last_name": "Rivera",
                "hometown": "Leeds",
                "instrument": "Drums",
            },
            headers=auth_headers(sam),
        )
        assert response.status_code == 200
        assert response.json()["profile_completed"] is True

    def test_blank_display_name(self, test_client, auth_headers, make_user):
        response = test_client.put(
            "/api/users/me", json={"display_name": "   "}, headers=auth_headers(make_user())
        )
        assert response.status_code == 400


class TestUnavailability:
    def test_lifecycle(self, test_client, auth_headers, make_user):
        sam = make_user()
        headers = auth_headers(sam)

        response = test_client.post(
            "/api/users/me/unavailability",
            json={
                "date": "2026-04-02",
                "end_date": "2026-04-09",
                "notes": "Holiday",
                "recurring": {"freq": "yearly"},
            },
            headers=headers,
        )
        assert response.status_code == 201
        created = response.json()
        assert created["event_type"] == "unavailable"
        assert created["owner_user_guid"] == sam.guid
        assert created["group_guid"] is None
        assert created["is_all_day"] is True
        assert created["is_public"] is False
        assert created["recurring"] == {"freq": "yearly"}

        url = f"/api/users/me/unavailability/{created['guid']}"
        response = test_client.patch(url, json={"end_date": "2026-04-05"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["end_date"] == "2026-04-05"

        response = test_client.get(
            "/api/users/me/unavailability",
            params={"start_date": "2026-04-01", "end_date": "2026-04-30"},
            headers=headers,
        )
        assert [e["guid"] for e in response.json()] == [created["guid"]]

        assert test_client.delete(url, headers=headers).status_code == 200
        assert test_client.delete(url, headers=headers).status_code == 404

    def test_inverted_range(self, test_client, auth_headers, make_user):
        response = test_client.post(
            "/api/users/me/unavailability",
            json={"date": "2026-04-09", "end_date": "2026-04-02"},
            headers=auth_headers(make_user()),
        )
        assert response.status_code == 400

    def test_cannot_touch_someone_elses(self, test_client, auth_headers, make_user,
                                        make_unavailability):
        owner, other = make_user(), make_user()
        away = make_unavailability(owner, date(2026, 4, 2))
        url = f"/api/users/me/unavailability/{away.guid}"

        response = test_client.patch(url, json={"notes": "x"}, headers=auth_headers(other))
        assert response.status_code == 404
        response = test_client.delete(url, headers=auth_headers(other))
        assert response.status_code == 404

    def test_group_event_not_reachable(self, test_client, auth_headers, make_user,
                                       make_group, make_group_event):
        sam = make_user()
        event = make_group_event(make_group(sam), sam)
        response = test_client.delete(
            f"/api/users/me/unavailability/{event.guid}", headers=auth_headers(sam)
        )
        assert response.status_code == 404
