"""챌린지 API 엔드포인트 테스트"""

from unittest.mock import AsyncMock, patch

import httpx
import openai
import pytest

from app.core.config import settings
from app.core.exceptions import RepositoryProvisioningError
from app.infra.llm.client import classify_completion_error

GENERATE_URL = "/api/v1/challenge/generate"


@pytest.fixture
def mock_generate():
    """LLM 호출 mock"""
    with patch(
        "app.domain.challenge.workflow.generate_challenge",
        new_callable=AsyncMock,
        return_value="# Coding Challenge\n\n## Problem Description\nFix it.",
    ) as mock:
        yield mock


def _assert_cors_once(response: httpx.Response) -> None:
    assert response.headers.get_list("access-control-allow-origin") == ["*"]
    assert response.headers.get_list("access-control-allow-methods") == ["POST, OPTIONS"]
    assert response.headers.get_list("access-control-allow-headers") == [
        "Content-Type, Authorization"
    ]


class TestGenerateChallenge:
    """POST /api/v1/challenge/generate 테스트"""

    @pytest.mark.asyncio
    async def test_success(self, async_client, mock_generate, sample_files, sample_repository):
        """정상 요청은 200과 링크 반환"""
        response = await async_client.post(
            GENERATE_URL,
            files=sample_files,
            data={"last_name": "O Brien", "job_desc_text": "Senior QA Engineer"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "challengeLink": sample_repository.editor_url,
            "githubRepo": sample_repository.html_url,
        }
        _assert_cors_once(response)

    @pytest.mark.asyncio
    async def test_missing_file(self, async_client, mock_generate, mock_provisioner, sample_files):
        """파일 누락은 400과 수신 여부"""
        response = await async_client.post(
            GENERATE_URL, files={"resume": sample_files["resume"]}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Both resume and job description files are required."
        assert body["error_code"] == "MISSING_FILE"
        assert body["received"] == {"resume": True, "jobDescription": False}
        mock_generate.assert_not_awaited()
        mock_provisioner.provision.assert_not_awaited()
        _assert_cors_once(response)

    @pytest.mark.asyncio
    async def test_wrong_content_type(self, async_client, mock_generate):
        """multipart가 아니면 400"""
        response = await async_client.post(GENERATE_URL, json={"resume": "text"})

        assert response.status_code == 400
        assert response.json()["error"] == "Content-Type must be multipart/form-data"

    @pytest.mark.asyncio
    async def test_malformed_body(self, async_client, mock_generate):
        """종료되지 않은 multipart 본문은 400"""
        content = (
            b"--xyz\r\n"
            b'Content-Disposition: form-data; name="resume"; filename="r.txt"\r\n\r\n'
            b"partial"
        )
        response = await async_client.post(
            GENERATE_URL,
            content=content,
            headers={"Content-Type": "multipart/form-data; boundary=xyz"},
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "MALFORMED_BODY"
        mock_generate.assert_not_awaited()

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
    @pytest.mark.asyncio
    async def test_method_not_allowed(self, async_client, mock_generate, method):
        """POST 외 메서드는 405"""
        response = await async_client.request(method, GENERATE_URL)

        assert response.status_code == 405
        assert response.json()["error"] == "Method not allowed. Use POST."
        _assert_cors_once(response)

    @pytest.mark.asyncio
    async def test_preflight(self, async_client, mock_generate):
        """OPTIONS는 본문 없이 204"""
        response = await async_client.options(GENERATE_URL)

        assert response.status_code == 204
        assert response.content == b""
        _assert_cors_once(response)
        mock_generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upstream_rate_limit(
        self, async_client, mock_generate, mock_provisioner, sample_files
    ):
        """LLM 429는 429로 전달하고 레포지토리 생성 없음"""
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        mock_generate.side_effect = classify_completion_error(
            openai.RateLimitError(
                "Rate limit reached",
                response=httpx.Response(429, request=request),
                body=None,
            )
        )

        response = await async_client.post(GENERATE_URL, files=sample_files)

        assert response.status_code == 429
        assert "Rate limit" in response.json()["error"]
        mock_provisioner.provision.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_provisioning_failure(
        self, async_client, mock_generate, mock_provisioner, sample_files
    ):
        """프로비저닝 실패는 500과 상세 정보"""
        mock_provisioner.provision.side_effect = RepositoryProvisioningError(
            detail="git push origin feature/initial-setup 실패"
        )

        response = await async_client.post(GENERATE_URL, files=sample_files)

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Unexpected server error while generating challenge."
        assert body["error_code"] == "REPOSITORY_PROVISIONING_FAILED"
        assert "git push" in body["details"]

    @pytest.mark.asyncio
    async def test_streamed_body(
        self, async_client, mock_generate, sample_files, sample_repository
    ):
        """버퍼링을 끄면 스트림으로 파싱"""
        with patch.object(settings, "multipart_buffer_body", False):
            response = await async_client.post(GENERATE_URL, files=sample_files)

        assert response.status_code == 200
        assert response.json()["githubRepo"] == sample_repository.html_url
