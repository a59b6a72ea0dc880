"""Tests for health payload helpers."""

from leadrouter.api.models.health import ComponentHealth, HealthResponse


class TestOverallStatus:
    """Tests for HealthResponse.overall."""

    def test_worst_status_wins(self) -> None:
        """Should report the most severe component status."""
        components = [
            ComponentHealth(name="storage", status="healthy"),
            ComponentHealth(name="office_directory", status="degraded"),
        ]

        assert HealthResponse.overall(components) == "degraded"

    def test_unhealthy_beats_degraded(self) -> None:
        """Should treat unhealthy as worse than degraded."""
        components = [
            ComponentHealth(name="office_directory", status="degraded"),
            ComponentHealth(name="storage", status="unhealthy"),
        ]

        assert HealthResponse.overall(components) == "unhealthy"

    def test_no_components(self) -> None:
        """Should be healthy with nothing to check."""
        assert HealthResponse.overall([]) == "healthy"
