"""API Configuration.

Settings for the REST API and the caller-identity headers.
"""

from dataclasses import dataclass, field


# Headers set by the authentication layer in front of this service.
USER_ID_HEADER = "X-User-Id"
USER_ADMIN_HEADER = "X-User-Admin"
USER_EMAIL_HEADER = "X-User-Email"


@dataclass
class APIConfig:
    """Core API settings."""

    title: str = "Workroom API"
    version: str = "1.0.0"
    description: str = "Workspace membership and invitation API"
    prefix: str = "/v1"
    docs_url: str = "/docs"
    cors_origins: list[str] = field(default_factory=lambda: [
        "http://localhost:3000",   # web app
        "http://localhost:8000",   # API self-reference
    ])
    cors_methods: list[str] = field(
        default_factory=lambda: ["GET", "POST", "PATCH", "DELETE", "OPTIONS"]
    )
    cors_headers: list[str] = field(default_factory=lambda: ["*"])


DEFAULT_API_CONFIG = APIConfig()
