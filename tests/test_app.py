"""Tests for the calcdoc HTTP API.

Tests cover:
- GET /health
- POST /v1/documents/parse
- POST /v1/documents/calculate
- POST /v1/expressions/evaluate
- Error envelopes for parse failures and invalid requests
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from calcdoc import __version__
from calcdoc.app import create_app
from calcdoc.config import CalcdocConfig


@pytest.fixture
def client() -> TestClient:
    """Client for an app with default configuration."""
    return TestClient(create_app(CalcdocConfig()))


class TestHealth:
    """Test the health endpoint."""

    def test_health(self, client: TestClient) -> None:
        """Health reports ok and the package version."""
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["version"] == __version__
        assert "time" in body


class TestParseEndpoint:
    """Test POST /v1/documents/parse."""

    def test_parse(self, client: TestClient, sample_markdown: str) -> None:
        """A document parses to the ParseResult shape."""
        response = client.post("/v1/documents/parse", json={"content": sample_markdown})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["document"]["input_variables"] == ["basePrice", "taxRate"]
        assert body["metadata"]["section_count"] == 3

    def test_filename_selects_format(self, client: TestClient) -> None:
        """The filename extension decides the format."""
        response = client.post(
            "/v1/documents/parse",
            json={"content": "* Loan\nprincipal = 1000\n", "filename": "loan.org"},
        )

        assert response.json()["document"]["format"] == "org"

    def test_options(self, client: TestClient, sample_markdown: str) -> None:
        """Request options reach the parser."""
        response = client.post(
            "/v1/documents/parse",
            json={
                "content": sample_markdown,
                "options": {
                    "auto_detect_inputs": False,
                    "explicit_inputs": ["taxRate"],
                    "render_content": False,
                },
            },
        )

        document = response.json()["document"]
        assert document["input_variables"] == ["taxRate"]
        assert document["sections"][0]["items"][0]["html"] is None

    def test_app_config_applies(self, sample_markdown: str) -> None:
        """The configuration passed to create_app governs rendering."""
        client = TestClient(create_app(CalcdocConfig(render_content=False)))

        response = client.post("/v1/documents/parse", json={"content": sample_markdown})

        items = response.json()["document"]["sections"][0]["items"]
        assert items[0]["html"] is None

    def test_forced_format(self, client: TestClient) -> None:
        """options.format skips detection."""
        response = client.post(
            "/v1/documents/parse",
            json={"content": "# A\nx = 1\n", "options": {"format": "org"}},
        )

        assert response.json()["document"]["format"] == "org"

    def test_parse_failure_is_422(self, client: TestClient) -> None:
        """Duplicate variables produce a PARSE_FAILED envelope."""
        response = client.post("/v1/documents/parse", json={"content": "# A\nx = 1\nx = 2\n"})

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "PARSE_FAILED"
        assert body["message"] == "Variable 'x' is already defined on line 2"
        assert body["details"]["errors"][0]["code"] == "duplicate_variable"

    def test_invalid_request(self, client: TestClient) -> None:
        """Missing fields are reported as request validation failures."""
        response = client.post("/v1/documents/parse", json={"filename": "x.md"})

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "REQUEST_VALIDATION_FAILED"
        assert body["details"]["errors"][0]["field"] == "content"

    def test_unknown_option_rejected(self, client: TestClient) -> None:
        """Unknown option names are rejected."""
        response = client.post(
            "/v1/documents/parse",
            json={"content": "# A", "options": {"colour": "red"}},
        )

        assert response.status_code == 422


class TestCalculateEndpoint:
    """Test POST /v1/documents/calculate."""

    def test_calculate(self, client: TestClient, sample_markdown: str) -> None:
        """The response carries the document and the calculated state."""
        response = client.post("/v1/documents/calculate", json={"content": sample_markdown})

        assert response.status_code == 200
        state = response.json()["state"]
        assert state["input_values"] == {"basePrice": 100.0, "taxRate": 0.2}
        assert state["calculated_values"]["total"] == pytest.approx(120.0)
        assert state["errors"] == {}

    def test_calculate_with_inputs(self, client: TestClient, sample_markdown: str) -> None:
        """inputs override the literal values."""
        response = client.post(
            "/v1/documents/calculate",
            json={"content": sample_markdown, "inputs": {"basePrice": 50}},
        )

        state = response.json()["state"]
        assert state["calculated_values"]["total"] == pytest.approx(60.0)

    def test_calculation_errors_reported(self, client: TestClient) -> None:
        """Evaluation errors are part of a successful response."""
        response = client.post(
            "/v1/documents/calculate",
            json={"content": "# A\na = 10\nc = b + 5\nb = a * 2\n"},
        )

        assert response.status_code == 200
        state = response.json()["state"]
        assert state["errors"] == {"c": "undefined variable: b"}
        assert state["calculated_values"] == {"c": 0.0, "b": 20.0}

    def test_unknown_input_is_422(self, client: TestClient, sample_markdown: str) -> None:
        """Inputs must name input variables."""
        response = client.post(
            "/v1/documents/calculate",
            json={"content": sample_markdown, "inputs": {"total": 1}},
        )

        assert response.status_code == 422
        assert response.json()["code"] == "UNKNOWN_INPUT"


class TestEvaluateEndpoint:
    """Test POST /v1/expressions/evaluate."""

    def test_evaluate(self, client: TestClient) -> None:
        """Expressions evaluate against the given variables."""
        response = client.post(
            "/v1/expressions/evaluate",
            json={"expression": "x ^ 2", "variables": {"x": 3}},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "value": 9.0}

    def test_evaluate_failure(self, client: TestClient) -> None:
        """Evaluation failures are returned, not raised."""
        response = client.post("/v1/expressions/evaluate", json={"expression": "nope(1)"})

        assert response.status_code == 200
        assert response.json() == {"success": False, "error": "unknown function: nope"}
