from unittest.mock import Mock

from karetek.api.routes.stats import FALLBACK_CONSULTATIONS, FALLBACK_METRICS_TRACKED

class TestStats:

    def test_empty_database_uses_fallbacks(self, client):
        response = client.get("/api/stats")

        assert response.status_code == 200
        assert response.json() == {
            "totalConsultations": 19509522,
            "activeUsers": 150000,
            "healthMetricsTracked": 500000,
        }

    def test_real_counts(self, client, register_user):
        headers, _ = register_user()
        client.post("/api/health-metrics", headers=headers, json={"metricType": "weight", "value": 70, "unit": "kg"})

        data = client.get("/api/stats").json()

        assert data["activeUsers"] == 1
        assert data["healthMetricsTracked"] == 1
        assert data["totalConsultations"] == FALLBACK_CONSULTATIONS

    def test_count_failure_uses_fallback(self, client, services):
        services.repository = Mock()
        services.repository.count_consultations.side_effect = RuntimeError("boom")
        services.repository.count_users.return_value = 3
        services.repository.count_metrics.side_effect = RuntimeError("boom")

        data = client.get("/api/stats").json()

        assert data == {
            "totalConsultations": FALLBACK_CONSULTATIONS,
            "activeUsers": 3,
            "healthMetricsTracked": FALLBACK_METRICS_TRACKED,
        }
