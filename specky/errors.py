"""Exception taxonomy.

Only SpecFormatError and SpecLoadError are allowed to abort startup.
Everything raised while serving a single tool invocation is caught by the
dispatchers and reported back as an error-flagged result.
"""

from __future__ import annotations


class SpeckyError(Exception):
    """Base class for all errors raised by this package."""


class SpecLoadError(SpeckyError):
    """The spec document could not be read, fetched or decoded."""


class SpecFormatError(SpeckyError):
    """The document is neither OpenAPI 3.x nor Swagger 2.0."""


class UnknownToolError(SpeckyError):
    """Full mode invocation named a tool that does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class EndpointNotFoundError(SpeckyError):
    """Search mode call_endpoint found no exact match for an endpoint id."""

    def __init__(self, endpoint_id: str, suggestions: list[str] | None = None) -> None:
        self.endpoint_id = endpoint_id
        self.suggestions = suggestions or []
        if self.suggestions:
            message = (
                f'Endpoint "{endpoint_id}" not found. '
                f"Did you mean: {', '.join(self.suggestions)}?"
            )
        else:
            message = (
                f'Endpoint "{endpoint_id}" not found. '
                "Use search_endpoints to find available endpoints."
            )
        super().__init__(message)


class OAuth2Error(SpeckyError):
    """The client-credentials token exchange returned a non-success status."""

    def __init__(self, status_code: int, reason: str) -> None:
        super().__init__(f"OAuth2 token request failed: {status_code} {reason}".rstrip())
        self.status_code = status_code
        self.reason = reason


class ApiCallError(SpeckyError):
    """The outbound API call failed (transport error, undecodable body)."""
