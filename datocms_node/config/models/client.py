"""HTTP client and upload configuration models."""

from pydantic import BaseModel, Field, model_validator


class ClientConfig(BaseModel):
    """Settings for the CMA HTTP client."""

    timeout: float = Field(default=60.0, gt=0, description="Request timeout in seconds")
    page_size: int = Field(
        default=100,
        ge=1,
        le=500,
        description="Page size used by paged iterators",
    )
    job_poll_interval: float = Field(
        default=1.0,
        gt=0,
        description="Seconds between job-result polls",
    )
    job_poll_attempts: int = Field(
        default=60,
        ge=1,
        description="Polls before an async job is reported as failed",
    )


class UploadsConfig(BaseModel):
    """Bulk upload settings."""

    concurrency: int = Field(default=5, ge=1, description="Uploads per wave")
    max_concurrency: int = Field(default=20, ge=1, description="Upper bound for callers")

    @model_validator(mode="after")
    def check_bounds(self) -> "UploadsConfig":
        if self.concurrency > self.max_concurrency:
            raise ValueError("concurrency must not exceed max_concurrency")
        return self
