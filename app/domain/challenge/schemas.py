from enum import Enum
from typing import Any, TypedDict

from pydantic import BaseModel, ConfigDict, Field

from app.core.exceptions import CustomException


class Difficulty(str, Enum):
    """챌린지 난이도"""

    JUNIOR = "junior"
    INTERMEDIATE = "intermediate"
    SENIOR = "senior"


class Stage(str, Enum):
    """파이프라인 진행 단계"""

    RECEIVED = "received"
    EXTRACTED = "extracted"
    VALIDATED = "validated"
    PROMPT_BUILT = "prompt_built"
    COMPLETED = "completed"
    PROVISIONED = "provisioned"
    RESPONDED = "responded"
    FAILED = "failed"


class SubmissionEnvelope(BaseModel):
    """HTTP 요청에서 파이프라인으로 넘기는 원본 입력

    body가 있으면 stream보다 우선 사용한다.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    method: str
    content_type: str | None = None
    body: bytes | None = None
    stream: Any = None


class ExtractionResult(BaseModel):
    """multipart 파싱 결과"""

    files: dict[str, bytes] = Field(default_factory=dict)
    fields: dict[str, str] = Field(default_factory=dict)
    oversized: set[str] = Field(default_factory=set)
    malformed: bool = False
    timed_out: bool = False
    error: str | None = None


class SubmissionRequest(BaseModel):
    """검증을 마친 챌린지 생성 요청"""

    resume_text: str
    job_description_text: str
    first_name: str | None = None
    last_name: str | None = None
    job_title: str | None = None
    difficulty: Difficulty = Difficulty.INTERMEDIATE


class RepositoryHandle(BaseModel):
    """생성된 챌린지 레포지토리"""

    name: str
    owner: str
    html_url: str
    branch_url: str
    editor_url: str


class SubmissionResult(BaseModel):
    """호출자에게 반환하는 최종 결과"""

    challenge_link: str
    github_repo: str
    message: str | None = None


class ChallengeState(TypedDict, total=False):
    """LangGraph 파이프라인 상태"""

    envelope: SubmissionEnvelope
    submission_id: str
    stage: Stage
    extraction: ExtractionResult
    submission: SubmissionRequest
    prompt: str
    challenge: str
    repository: RepositoryHandle
    error: CustomException
