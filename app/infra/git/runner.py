"""
git CLI 실행

asyncio 서브프로세스로 git을 호출한다. 실패는 GitCommandError로 올리고,
명령줄과 stderr에 포함된 자격 증명은 마스킹한다.
"""

import asyncio
import os
import re
from pathlib import Path

from app.core.logging import get_logger, mask_sensitive_data

logger = get_logger(__name__)

GIT_BINARY = "git"

IDENTITY_ERROR_PATTERNS = [
    re.compile(r"author identity unknown", re.IGNORECASE),
    re.compile(r"identity unknown", re.IGNORECASE),
    re.compile(r"please tell me who you are", re.IGNORECASE),
    re.compile(r"empty ident name", re.IGNORECASE),
    re.compile(r"unable to auto-detect email address", re.IGNORECASE),
]


class GitCommandError(Exception):
    """git 명령 실패"""

    def __init__(self, args: list[str], returncode: int | None, stderr: str):
        self.command = mask_sensitive_data(" ".join(["git", *args]))
        self.returncode = returncode
        self.stderr = mask_sensitive_data(stderr.strip())
        super().__init__(f"{self.command} 실패 (exit={returncode}): {self.stderr}")


def is_identity_error(exc: Exception) -> bool:
    """커밋 작성자 정보 미설정으로 인한 실패인지 판단

    git은 이 경우에 대한 별도 종료 코드가 없어 stderr 문구로만 구분한다.
    """
    if not isinstance(exc, GitCommandError):
        return False
    return any(pattern.search(exc.stderr) for pattern in IDENTITY_ERROR_PATTERNS)


def _git_env() -> dict[str, str]:
    """대화형 프롬프트를 막은 git 실행 환경"""
    env = dict(os.environ)
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


async def run_git(args: list[str], cwd: Path | str | None = None, timeout: float = 120.0) -> str:
    """git 명령 실행 후 stdout 반환

    Args:
        args: git 하위 명령과 인자
        cwd: 작업 디렉터리
        timeout: 제한 시간(초)

    Returns:
        stdout 문자열

    Raises:
        GitCommandError: 종료 코드가 0이 아니거나 제한 시간을 넘긴 경우
    """
    logger.debug("git 실행 command=%s", mask_sensitive_data(" ".join(args)))

    try:
        process = await asyncio.create_subprocess_exec(
            GIT_BINARY,
            *args,
            cwd=str(cwd) if cwd else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=_git_env(),
        )
    except FileNotFoundError as e:
        raise GitCommandError(args, None, "git 실행 파일을 찾을 수 없습니다") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError as e:
        process.kill()
        await process.wait()
        raise GitCommandError(args, None, f"제한 시간 초과 ({timeout:.0f}초)") from e

    if process.returncode != 0:
        raise GitCommandError(
            args,
            process.returncode,
            stderr.decode("utf-8", errors="replace"),
        )

    return stdout.decode("utf-8", errors="replace")


async def clone(remote_url: str, path: Path, timeout: float = 120.0) -> "GitRepository":
    """원격 레포지토리를 로컬 경로로 클론"""
    await run_git(["clone", remote_url, str(path)], timeout=timeout)
    logger.info("클론 완료 path=%s", path.name)
    return GitRepository(path, timeout=timeout)


class GitRepository:
    """로컬 작업 사본에 대한 git 명령 모음"""

    def __init__(self, path: Path, timeout: float = 120.0):
        self.path = path
        self.timeout = timeout

    async def _run(self, *args: str) -> str:
        return await run_git(list(args), cwd=self.path, timeout=self.timeout)

    async def add_config(self, key: str, value: str) -> None:
        await self._run("config", key, value)

    async def checkout_new_branch(self, branch: str) -> None:
        await self._run("checkout", "-b", branch)

    async def add(self, *paths: str) -> None:
        await self._run("add", *paths)

    async def commit(self, message: str) -> None:
        await self._run("commit", "-m", message)

    async def push(self, remote: str, branch: str) -> None:
        await self._run("push", remote, branch)
