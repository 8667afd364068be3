import pytest

class TestHealthRecords:

    def test_empty_records(self, client, auth_headers):
        response = client.get("/api/health-records", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"medications": [], "allergies": [], "conditions": []}

    @pytest.mark.parametrize("kind,payload,column,expected", [
        ("medications", {"name": "Metformin", "dosage": "500mg", "startDate": "2024-01-10"}, "start_date", "2024-01-10"),
        ("allergies", {"name": "Penicillin", "reaction": "Hives", "severity": "moderate"}, "reaction", "Hives"),
        ("conditions", {"name": "Asthma", "diagnosedDate": "2010-05-01", "status": "active"}, "diagnosed_date", "2010-05-01"),
    ])
    def test_add_entry(self, client, auth_headers, kind, payload, column, expected):
        response = client.post(f"/api/health-records/{kind}", headers=auth_headers, json=payload)

        assert response.status_code == 201
        entry = response.json()["entry"]
        assert entry["name"] == payload["name"]
        assert entry[column] == expected
        assert "user_id" not in entry

        records = client.get("/api/health-records", headers=auth_headers).json()
        assert [e["id"] for e in records[kind]] == [entry["id"]]

    def test_name_required(self, client, auth_headers):
        response = client.post("/api/health-records/allergies", headers=auth_headers, json={"reaction": "Rash"})

        assert response.status_code == 400
        assert response.json()["message"] == "Name is required"

    def test_unknown_kind(self, client, auth_headers):
        response = client.post("/api/health-records/surgeries", headers=auth_headers, json={"name": "Appendectomy"})

        assert response.status_code == 404

    def test_update_and_delete(self, client, auth_headers):
        entry = client.post(
            "/api/health-records/medications", headers=auth_headers, json={"name": "Ibuprofen", "dosage": "200mg"}
        ).json()["entry"]

        updated = client.put(
            f"/api/health-records/medications/{entry['id']}", headers=auth_headers, json={"dosage": "400mg"}
        )
        assert updated.status_code == 200
        assert updated.json()["entry"]["dosage"] == "400mg"
        assert updated.json()["entry"]["name"] == "Ibuprofen"

        deleted = client.delete(f"/api/health-records/medications/{entry['id']}", headers=auth_headers)
        assert deleted.status_code == 200
        assert client.get("/api/health-records", headers=auth_headers).json()["medications"] == []

    def test_other_users_entry_is_untouched(self, client, register_user, repository):
        owner_headers, owner = register_user(email="owner@example.com")
        other_headers, _ = register_user(email="other@example.com")
        entry = client.post(
            "/api/health-records/conditions", headers=owner_headers, json={"name": "Migraine"}
        ).json()["entry"]

        assert client.delete(f"/api/health-records/conditions/{entry['id']}", headers=other_headers).status_code == 404
        assert client.put(
            f"/api/health-records/conditions/{entry['id']}", headers=other_headers, json={"status": "resolved"}
        ).status_code == 404
        assert repository.list_entries(owner["id"], "conditions")[0]["status"] is None

    def test_entries_feed_profile_lists(self, client, auth_headers):
        client.post("/api/health-records/allergies", headers=auth_headers, json={"name": "Peanuts"})

        profile = client.get("/api/profile", headers=auth_headers).json()["profile"]

        assert profile["allergies"] == ["Peanuts"]
