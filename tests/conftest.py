"""테스트 공통 fixture"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.v1.challenge import get_pipeline
from app.core.config import Settings
from app.core.limiter import limiter
from app.domain.challenge.schemas import (
    ExtractionResult,
    RepositoryHandle,
    SubmissionEnvelope,
)
from app.domain.challenge.workflow import ChallengePipeline
from app.infra.llm.factory import reset_clients
from app.main import app

SAMPLE_RESUME = b"Jane O Brien\nSenior QA Engineer\n- 8 years of Python, pytest, Selenium\n"
SAMPLE_JOB_DESCRIPTION = b"We are hiring a Senior QA Engineer to own our API test automation.\n"


@pytest.fixture(autouse=True)
def _disable_rate_limit():
    """요청 제한 비활성화"""
    previous = limiter.enabled
    limiter.enabled = False
    yield
    limiter.enabled = previous


@pytest.fixture(autouse=True)
def _reset_llm_clients():
    """LLM 클라이언트 캐시 초기화"""
    reset_clients()
    yield
    reset_clients()


@pytest.fixture
def test_settings() -> Settings:
    """테스트용 설정"""
    return Settings(
        _env_file=None,
        environment="test",
        openai_api_key="sk-test-key-0123456789",
        github_token="ghp_testtoken0123456789",
        github_username="octocat",
        multipart_timeout=0.5,
    )


@pytest.fixture
def build_multipart():
    """multipart/form-data 본문 생성 helper"""

    def _build(
        files: dict[str, tuple[str, bytes]] | None = None,
        fields: dict[str, str] | None = None,
        boundary: str = "----challengeboundary",
        close: bool = True,
    ) -> tuple[bytes, str]:
        parts = []
        for name, (filename, content) in (files or {}).items():
            parts.append(
                (
                    f"--{boundary}\r\n"
                    f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
                    "Content-Type: text/plain\r\n\r\n"
                ).encode()
                + content
                + b"\r\n"
            )
        for name, value in (fields or {}).items():
            parts.append(
                (
                    f"--{boundary}\r\n"
                    f'Content-Disposition: form-data; name="{name}"\r\n\r\n'
                    f"{value}\r\n"
                ).encode()
            )
        if close:
            parts.append(f"--{boundary}--\r\n".encode())
        return b"".join(parts), f"multipart/form-data; boundary={boundary}"

    return _build


@pytest.fixture
def sample_files() -> dict[str, tuple[str, bytes]]:
    """이력서와 채용 공고 파일"""
    return {
        "resume": ("resume.txt", SAMPLE_RESUME),
        "job_description": ("job.txt", SAMPLE_JOB_DESCRIPTION),
    }


@pytest.fixture
def sample_envelope(build_multipart, sample_files) -> SubmissionEnvelope:
    """정상 제출 요청"""
    body, content_type = build_multipart(
        files=sample_files,
        fields={"last_name": "O Brien", "job_title": "Senior QA Engineer"},
    )
    return SubmissionEnvelope(method="POST", content_type=content_type, body=body)


@pytest.fixture
def sample_extraction() -> ExtractionResult:
    """정상 추출 결과"""
    return ExtractionResult(
        files={"resume": SAMPLE_RESUME, "job_description": SAMPLE_JOB_DESCRIPTION},
        fields={"first_name": "Jane", "last_name": "O Brien", "difficulty": "senior"},
    )


@pytest.fixture
def sample_repository() -> RepositoryHandle:
    """생성된 레포지토리"""
    name = "oddball-code-challenge-repo-1700000000000000-o-brien-senior-qa-engineer"
    return RepositoryHandle(
        name=name,
        owner="octocat",
        html_url=f"https://github.com/octocat/{name}",
        branch_url=f"https://github.com/octocat/{name}/tree/feature/initial-setup",
        editor_url=f"https://vscode.dev/github/octocat/{name}/tree/feature/initial-setup",
    )


@pytest.fixture
def mock_provisioner(sample_repository):
    """레포지토리 프로비저너 mock"""
    provisioner = MagicMock()
    provisioner.provision = AsyncMock(return_value=sample_repository)
    return provisioner


@pytest.fixture
def pipeline(test_settings, mock_provisioner) -> ChallengePipeline:
    """프로비저너를 mock으로 교체한 파이프라인"""
    return ChallengePipeline(test_settings, provisioner=mock_provisioner)


@pytest_asyncio.fixture
async def async_client(pipeline):
    """비동기 HTTP 클라이언트, 파이프라인 의존성 교체"""
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.pop(get_pipeline, None)


@pytest.fixture
def create_http_error():
    """HTTPStatusError 생성 helper"""

    def _create(status_code: int, json: dict | None = None, method: str = "POST"):
        request = httpx.Request(method, "https://api.github.com/user/repos")
        response = httpx.Response(status_code, json=json, request=request)
        return httpx.HTTPStatusError(
            f"HTTP {status_code}",
            request=request,
            response=response,
        )

    return _create
