class TestProfile:

    def test_get_profile(self, client, register_user):
        headers, user = register_user(phoneNumber="+92 300 1234567")

        response = client.get("/api/profile", headers=headers)

        assert response.status_code == 200
        profile = response.json()["profile"]
        assert profile["id"] == user["id"]
        assert profile["phone_number"] == "+92 300 1234567"
        assert profile["medical_conditions"] == []
        assert "password_hash" not in profile

    def test_update_only_provided_fields(self, client, auth_headers):
        response = client.put("/api/profile", headers=auth_headers, json={
            "bloodGroup": "O+",
            "height": 180,
            "weight": 75.5,
            "city": "Lahore",
        })

        assert response.status_code == 200
        profile = response.json()["profile"]
        assert profile["blood_group"] == "O+"
        assert profile["height"] == 180
        assert profile["weight"] == 75.5
        assert profile["city"] == "Lahore"
        assert profile["first_name"] == "Jane"

    def test_list_fields_replace_entries(self, client, auth_headers):
        client.put("/api/profile", headers=auth_headers, json={"medicalConditions": ["Asthma"]})
        response = client.put("/api/profile", headers=auth_headers, json={
            "medicalConditions": ["Hypertension"],
            "currentMedications": ["Amlodipine"],
        })

        profile = response.json()["profile"]
        assert profile["medical_conditions"] == ["Hypertension"]
        assert profile["current_medications"] == ["Amlodipine"]
        assert profile["allergies"] == []

    def test_invalid_field_type(self, client, auth_headers):
        response = client.put("/api/profile", headers=auth_headers, json={"height": "very tall"})

        assert response.status_code == 400
        assert "height" in response.json()["message"]

    def test_requires_auth(self, client):
        assert client.get("/api/profile").status_code == 401
        assert client.put("/api/profile", json={"city": "Karachi"}).status_code == 401
