"""Deployment job input and result models."""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

# Cap on relative paths echoed back in a result, for diagnostics only
UPLOADED_FILES_SAMPLE = 20


class DeployJobInput(BaseModel):
    """Input for one build-and-deploy job, as handed over by the queue.

    Accepts both snake_case and camelCase keys since jobs are usually
    enqueued by a JavaScript front end.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )

    repo_url: str = Field(..., min_length=1)
    deployment_id: str = Field(
        ..., min_length=1, max_length=128, pattern=r"^[A-Za-z0-9][A-Za-z0-9_-]*$"
    )
    repo_name: str = ""
    branch: str = Field(default="main", pattern=r"^[^\s-]\S*$")
    build_path: str = ""
    backend_url: str | None = None
    env_variables: str | None = None
    distribution_id: str | None = None

    @field_validator("branch", mode="before")
    @classmethod
    def default_branch(cls, v: str | None) -> str:
        return v or "main"

    @model_validator(mode="after")
    def default_repo_name(self) -> "DeployJobInput":
        if not self.repo_name:
            name = self.repo_url.rstrip("/").rsplit("/", 1)[-1].removesuffix(".git")
            # frozen model, bypass __setattr__
            object.__setattr__(self, "repo_name", name or self.deployment_id)
        return self


class DeployResult(BaseModel):
    """Result of a successful deployment."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    deployment_id: str
    repo_name: str
    bucket: str

    total_files: int
    uploaded_count: int

    s3_url: str
    cloudfront_url: str | None = None
    cloudfront_distribution_id: str | None = None
    s3_path: str
    local_path: str

    uploaded_files: list[str] = Field(default_factory=list, max_length=UPLOADED_FILES_SAMPLE)
