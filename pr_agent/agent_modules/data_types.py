"""Data models shared by the PR agent pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Patch(BaseModel):
    """A single exact-substring replacement inside one file."""

    model_config = ConfigDict(frozen=True)

    target_file: Path
    old_fragment: str = Field(min_length=1)
    new_fragment: str = Field(min_length=1)
    summary: str = Field(min_length=1)


class TestResult(BaseModel):
    """Outcome of one test-suite invocation."""

    __test__ = False  # not a pytest class

    model_config = ConfigDict(frozen=True)

    success: bool
    output: str
    command: Optional[str] = None


class Workspace(BaseModel):
    """Per-run isolated directory and the repository materialized inside it."""

    model_config = ConfigDict(frozen=True)

    root_dir: Path
    repo_dir: Path


class RepoInfo(BaseModel):
    """Hosting owner/name pair parsed from a remote URL."""

    model_config = ConfigDict(frozen=True)

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class PullRequestData(BaseModel):
    """Payload sent to (or handed back for) pull-request creation."""

    owner: str
    repo: str
    head: str
    base: str
    title: str
    body: str


class PullRequestResult(BaseModel):
    """What ``Publisher.open_pull_request`` reports back."""

    payload: PullRequestData
    url: Optional[str] = None
    number: Optional[int] = None
    created_via_api: bool = False


class FallbackPlan(BaseModel):
    """Diagnostic bundle for an operator when no patch is available."""

    model_config = ConfigDict(populate_by_name=True)

    files: List[str]
    file_contents: Dict[str, str] = Field(alias="fileContents")
    test_output: str = Field(alias="testOutput")
    goal: str
    needs_llm: bool = Field(default=True, alias="needsLLM")


class _RunResultBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict using the camelCase keys callers expect."""

        return self.model_dump(mode="json", by_alias=True)


class SuccessResult(_RunResultBase):
    status: Literal["success"] = "success"
    pr_data: PullRequestData = Field(alias="prData")
    pr_url: Optional[str] = Field(default=None, alias="prUrl")
    pr_number: Optional[int] = Field(default=None, alias="prNumber")
    created_via_api: bool = Field(default=False, alias="createdViaApi")
    branch_name: str = Field(alias="branchName")
    repo_info: RepoInfo = Field(alias="repoInfo")


class VerifyFailedResult(_RunResultBase):
    status: Literal["verify_failed"] = "verify_failed"
    output: str
    work_dir: Optional[str] = Field(default=None, alias="workDir")


class NeedsLLMResult(_RunResultBase):
    status: Literal["needs_llm"] = "needs_llm"
    plan: FallbackPlan
    repo_path: str = Field(alias="repoPath")
    work_dir: str = Field(alias="workDir")
    baseline_result: TestResult = Field(alias="baselineResult")


class ErrorResult(_RunResultBase):
    status: Literal["error"] = "error"
    message: str
    cause: Optional[str] = None
    work_dir: Optional[str] = Field(default=None, alias="workDir")


RunResult = Annotated[
    Union[SuccessResult, VerifyFailedResult, NeedsLLMResult, ErrorResult],
    Field(discriminator="status"),
]


__all__ = [
    "ErrorResult",
    "FallbackPlan",
    "NeedsLLMResult",
    "Patch",
    "PullRequestData",
    "PullRequestResult",
    "RepoInfo",
    "RunResult",
    "SuccessResult",
    "TestResult",
    "VerifyFailedResult",
    "Workspace",
]
