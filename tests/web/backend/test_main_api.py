"""Tests for app-level behavior: health, CORS and error shape."""


def test_health(api) -> None:
    response = api.client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_cors_preflight_allows_configured_origin(api) -> None:
    response = api.client.options(
        "/api/youtube-to-mp3",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


def test_unknown_route_uses_error_shape(api) -> None:
    response = api.client.get("/api/nope")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}
