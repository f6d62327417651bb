import re

from pydantic import BaseModel, ConfigDict, Field

_COMMIT_SHA = re.compile(r"[0-9a-fA-F]{40}")


class Position(BaseModel):
    """1-based line and column of a token in the source text."""

    model_config = ConfigDict(frozen=True)

    line: int
    column: int


class ActionReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    path: str = ""
    ref_or_sha: str = Field(min_length=1)

    @property
    def base(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def full_name(self) -> str:
        if self.path:
            return f"{self.base}/{self.path}"
        return self.base

    def has_commit_sha(self) -> bool:
        return _COMMIT_SHA.fullmatch(self.ref_or_sha) is not None

    def is_reusable_workflow(self) -> bool:
        path = self.path.lower()
        return path.endswith((".yml", ".yaml")) or ".github/workflows/" in path

    def __str__(self) -> str:
        return f"{self.full_name}@{self.ref_or_sha}"


class ResolvedVersion(BaseModel):
    model_config = ConfigDict(frozen=True)

    commit_sha: str = Field(pattern=r"^[0-9a-fA-F]{40}$")
    ref_comment: str
