from __future__ import annotations

from app.main import create_app


def test_required_endpoint_paths_are_registered():
    required = {
        ("GET", "/api/v1/health"),
        ("GET", "/api/v1/deals"),
        ("POST", "/api/v1/deals"),
        ("GET", "/api/v1/deals/pipeline"),
        ("GET", "/api/v1/deals/forecast"),
        ("GET", "/api/v1/deals/statistics"),
        ("PATCH", "/api/v1/deals/{deal_id}"),
        ("POST", "/api/v1/deals/{deal_id}/stage"),
        ("POST", "/api/v1/deals/{deal_id}/won"),
        ("POST", "/api/v1/deals/{deal_id}/lost"),
        ("DELETE", "/api/v1/deals/{deal_id}"),
        ("GET", "/api/v1/quotes"),
        ("POST", "/api/v1/quotes"),
        ("GET", "/api/v1/quotes/statistics"),
        ("POST", "/api/v1/quotes/expire-overdue"),
        ("PATCH", "/api/v1/quotes/{quote_id}"),
        ("GET", "/api/v1/quotes/{quote_id}/versions"),
        ("POST", "/api/v1/quotes/{quote_id}/clone"),
        ("POST", "/api/v1/quotes/{quote_id}/send"),
        ("POST", "/api/v1/quotes/{quote_id}/view"),
        ("POST", "/api/v1/quotes/{quote_id}/accept"),
        ("POST", "/api/v1/quotes/{quote_id}/reject"),
        ("DELETE", "/api/v1/quotes/{quote_id}"),
    }
    paths = create_app().openapi()["paths"]
    registered = {(method.upper(), path) for path, operations in paths.items() for method in operations}
    assert required.issubset(registered)
