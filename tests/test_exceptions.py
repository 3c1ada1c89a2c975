"""
Tests for the OAuth error hierarchy.
"""

import pytest

from mcp_auth.core.exceptions import (
    AccessDeniedError,
    InvalidClientError,
    InvalidGrantError,
    InvalidRequestError,
    OAuthError,
    UnauthorizedError,
)


class TestOAuthErrors:
    @pytest.mark.parametrize(
        "error_class,error,status",
        [
            (InvalidRequestError, "invalid_request", 400),
            (InvalidGrantError, "invalid_grant", 400),
            (InvalidClientError, "invalid_client", 401),
            (AccessDeniedError, "access_denied", 403),
            (UnauthorizedError, "unauthorized", 401),
        ],
    )
    def test_error_codes_and_status(self, error_class, error, status):
        exc = error_class("details")

        assert isinstance(exc, OAuthError)
        assert exc.error == error
        assert exc.status_code == status
        assert exc.to_dict() == {"error": error, "error_description": "details"}

    def test_status_override(self):
        assert InvalidClientError("Unknown client_id", status_code=400).status_code == 400
        assert InvalidClientError().status_code == 401

    def test_description_is_optional(self):
        assert InvalidGrantError().to_dict() == {"error": "invalid_grant"}

    def test_presented_token_is_invalid_token(self):
        assert UnauthorizedError(token_presented=True).error == "invalid_token"
        assert UnauthorizedError().error == "unauthorized"
