from typing import Literal

from app.core.config import Settings, settings
from app.core.logging import get_logger
from app.infra.llm.base import BaseLLMClient
from app.infra.llm.openai_client import OpenAIClient
from app.infra.llm.vllm_client import VLLMClient

logger = get_logger(__name__)

LLMProvider = Literal["openai", "vllm"]

_completion_clients: dict[tuple, BaseLLMClient] = {}


def _cache_key(config: Settings) -> tuple:
    """프로바이더 연결 정보가 같으면 같은 클라이언트 재사용"""
    if config.llm_provider == "vllm":
        return ("vllm", config.vllm_api_url, config.vllm_model, config.vllm_api_key)
    return (config.llm_provider, config.openai_model, config.openai_api_key)


def get_completion_client(config: Settings | None = None) -> BaseLLMClient:
    """챌린지 생성용 LLM 클라이언트 반환, 연결 정보별로 한 번만 생성"""
    config = config or settings

    key = _cache_key(config)
    cached = _completion_clients.get(key)
    if cached is not None:
        return cached

    provider = config.llm_provider

    if provider == "openai":
        client = OpenAIClient(config)
        logger.info("OpenAI 클라이언트 초기화 model=%s", config.openai_model)
    elif provider == "vllm":
        client = VLLMClient(config)
        logger.info("vLLM 클라이언트 초기화 model=%s", config.vllm_model)
    else:
        raise ValueError(f"지원하지 않는 LLM 프로바이더: {provider}")

    _completion_clients[key] = client
    return client


def reset_clients() -> None:
    """클라이언트 캐시 초기화 - 테스트용"""
    _completion_clients.clear()
