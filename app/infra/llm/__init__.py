from app.infra.llm.base import BaseLLMClient
from app.infra.llm.client import classify_completion_error, generate_challenge
from app.infra.llm.factory import get_completion_client, reset_clients
from app.infra.llm.openai_client import OpenAIClient
from app.infra.llm.vllm_client import VLLMClient

__all__ = [
    "BaseLLMClient",
    "OpenAIClient",
    "VLLMClient",
    "get_completion_client",
    "reset_clients",
    "generate_challenge",
    "classify_completion_error",
]
