import re

import httpx

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

GITHUB_API_BASE = "https://api.github.com"

GITHUB_URL_PATTERN = re.compile(r"github\.com/([a-zA-Z0-9_.-]+)/([a-zA-Z0-9_.-]+)")

_client = httpx.AsyncClient(timeout=settings.github_timeout)


def _get_headers(token: str | None = None) -> dict[str, str]:
    """GitHub API 요청 헤더 생성

    Args:
        token: GitHub 토큰

    Returns:
        HTTP 헤더 딕셔너리
    """
    headers = {"Accept": "application/vnd.github.v3+json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


async def close_client():
    """httpx 클라이언트 종료"""
    await _client.aclose()


def parse_repo_url(repo_url: str) -> tuple[str, str]:
    """GitHub URL에서 owner와 repo 추출

    Args:
        repo_url: GitHub 레포지토리 URL

    Returns:
        owner, repo 튜플

    Raises:
        ValueError: 유효하지 않은 GitHub URL인 경우
    """
    match = GITHUB_URL_PATTERN.search(repo_url)
    if not match:
        raise ValueError(f"유효하지 않은 GitHub URL: {repo_url}")
    owner = match.group(1)
    repo = match.group(2).removesuffix(".git")
    return owner, repo


def describe_http_error(e: httpx.HTTPStatusError) -> str:
    """GitHub 오류 응답을 한 줄 메시지로 변환"""
    message = ""
    try:
        data = e.response.json()
        if isinstance(data, dict):
            message = data.get("message", "")
            errors = data.get("errors") or []
            details = [err.get("message", "") for err in errors if isinstance(err, dict)]
            if any(details):
                message = f"{message} ({'; '.join(d for d in details if d)})"
    except ValueError:
        message = e.response.text[:200]
    return f"GitHub API 오류: HTTP {e.response.status_code} {message}".strip()


async def get_authenticated_user(token: str, api_base: str = GITHUB_API_BASE) -> dict:
    """토큰 소유 계정 정보 조회

    Args:
        token: GitHub 토큰
        api_base: GitHub API 기본 URL

    Returns:
        login, name, email 등을 포함한 계정 정보
    """
    response = await _client.get(f"{api_base}/user", headers=_get_headers(token))
    response.raise_for_status()
    data = response.json()

    logger.info("계정 정보 조회 완료 login=%s", data.get("login"))
    return data


async def create_repository(
    name: str,
    token: str,
    description: str = "",
    private: bool = False,
    auto_init: bool = True,
    api_base: str = GITHUB_API_BASE,
) -> dict:
    """인증된 계정 아래에 새 레포지토리 생성

    Args:
        name: 레포지토리 이름
        token: GitHub 토큰
        description: 레포지토리 설명
        private: 비공개 여부
        auto_init: 기본 브랜치를 README로 초기화할지 여부
        api_base: GitHub API 기본 URL

    Returns:
        name, html_url, owner 등을 포함한 레포지토리 정보

    Raises:
        httpx.HTTPStatusError: 생성 실패 시
    """
    payload = {
        "name": name,
        "description": description,
        "private": private,
        "auto_init": auto_init,
    }
    response = await _client.post(
        f"{api_base}/user/repos",
        headers=_get_headers(token),
        json=payload,
    )
    response.raise_for_status()
    data = response.json()

    logger.info("레포지토리 생성 완료 repo=%s url=%s", data.get("full_name"), data.get("html_url"))
    return data
