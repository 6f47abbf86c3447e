import os

import openai
from langchain_core.messages import HumanMessage
from langfuse.langchain import CallbackHandler

from app.core.config import Settings, settings
from app.core.exceptions import (
    CustomException,
    ErrorCode,
    InternalError,
    UpstreamCompletionError,
)
from app.core.logging import get_logger
from app.infra.llm.factory import get_completion_client

logger = get_logger(__name__)

if settings.langfuse_public_key:
    os.environ["LANGFUSE_PUBLIC_KEY"] = settings.langfuse_public_key
if settings.langfuse_secret_key:
    os.environ["LANGFUSE_SECRET_KEY"] = settings.langfuse_secret_key
if settings.langfuse_base_url:
    os.environ["LANGFUSE_HOST"] = settings.langfuse_base_url


def get_langfuse_handler(config: Settings | None = None) -> CallbackHandler | None:
    """Langfuse 콜백 핸들러 반환"""
    config = config or settings
    if not config.langfuse_public_key or not config.langfuse_secret_key:
        return None

    return CallbackHandler()


def _upstream_message(exc: openai.APIStatusError) -> str:
    """프로바이더 오류 응답에서 사람이 읽을 메시지 추출"""
    body = exc.body
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return exc.message


def classify_completion_error(exc: Exception) -> CustomException:
    """LLM 호출 예외를 응답용 예외로 분류

    Args:
        exc: LLM 호출 중 발생한 예외

    Returns:
        상태 코드가 정해진 CustomException
    """
    if isinstance(exc, CustomException):
        return exc

    if isinstance(exc, openai.NotFoundError):
        return UpstreamCompletionError(
            status_code=404,
            error_code=ErrorCode.UPSTREAM_NOT_FOUND,
            message="OpenAI endpoint not found.",
            detail=_upstream_message(exc),
        )
    if isinstance(exc, openai.AuthenticationError):
        return UpstreamCompletionError(
            status_code=401,
            error_code=ErrorCode.UPSTREAM_UNAUTHORIZED,
            message="Invalid OpenAI API key.",
            detail=_upstream_message(exc),
        )
    if isinstance(exc, openai.RateLimitError):
        return UpstreamCompletionError(
            status_code=429,
            error_code=ErrorCode.UPSTREAM_RATE_LIMITED,
            message="Rate limit exceeded. Try again later.",
            detail=_upstream_message(exc),
        )
    if isinstance(exc, openai.APIStatusError):
        message = _upstream_message(exc)
        return UpstreamCompletionError(
            status_code=503,
            error_code=ErrorCode.UPSTREAM_ERROR,
            message=f"OpenAI service error: {message}",
            detail=f"HTTP {exc.status_code}",
        )

    return InternalError(detail=str(exc) or type(exc).__name__)


async def generate_challenge(
    prompt: str,
    config: Settings | None = None,
    session_id: str | None = None,
) -> str:
    """프롬프트로 코딩 챌린지 README 생성

    재시도 없이 한 번만 호출하며, 실패는 분류된 예외로 변환한다.

    Args:
        prompt: build_challenge_prompt로 만든 프롬프트
        config: 애플리케이션 설정
        session_id: Langfuse 세션 ID

    Returns:
        앞뒤 공백을 제거한 챌린지 텍스트

    Raises:
        UpstreamCompletionError: 프로바이더가 오류 상태 코드로 응답한 경우
        InternalError: 네트워크, 타임아웃 또는 빈 응답
    """
    client = get_completion_client(config)
    logger.info("챌린지 생성 요청 model=%s prompt_length=%d", client.get_model_name(), len(prompt))

    langfuse_handler = get_langfuse_handler(config)
    run_config = {
        "callbacks": [langfuse_handler] if langfuse_handler else [],
        "metadata": {
            "langfuse_session_id": session_id,
            "langfuse_tags": ["challenge", "generate"],
        },
    }

    try:
        result = await client.get_chat_model().ainvoke(
            [HumanMessage(content=prompt)], config=run_config
        )
    except Exception as e:
        error = classify_completion_error(e)
        logger.error(
            "챌린지 생성 실패 error_code=%s error=%s",
            error.error_code,
            type(e).__name__,
        )
        raise error from e

    content = result.content if isinstance(result.content, str) else str(result.content)
    output = content.strip()
    if not output:
        raise InternalError(detail="LLM 응답이 비어 있습니다")

    logger.info("챌린지 생성 완료 length=%d", len(output))
    return output
