"""DatoCMS credential configuration."""

from pydantic import BaseModel, Field, SecretStr


class CredentialsConfig(BaseModel):
    """Credentials for the Content Management API."""

    api_token: SecretStr | None = Field(
        default=None,
        description="Full-access or role-scoped API token (prefer env var)",
    )
    environment: str | None = Field(
        default="main",
        description="Sandbox environment to target; None for the primary one",
    )
    base_url: str = Field(
        default="https://site-api.datocms.com",
        description="CMA base URL",
    )
