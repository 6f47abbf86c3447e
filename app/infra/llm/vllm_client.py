from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from app.core.config import Settings
from app.infra.llm.base import BaseLLMClient


class VLLMClient(BaseLLMClient):
    """vLLM 클라이언트 - OpenAI 호환 엔드포인트"""

    def __init__(self, config: Settings):
        if not config.vllm_api_url:
            raise ValueError("VLLM_API_URL이 설정되지 않았습니다")

        self._model_name = config.vllm_model
        self._model = ChatOpenAI(
            model=config.vllm_model,
            api_key=config.vllm_api_key or "EMPTY",
            base_url=config.vllm_api_url,
            timeout=config.vllm_timeout,
            temperature=config.openai_temperature,
            max_tokens=config.openai_max_tokens,
            max_retries=0,
        )

    def get_chat_model(self) -> BaseChatModel:
        """LangChain ChatOpenAI 모델 반환"""
        return self._model

    def get_model_name(self) -> str:
        """사용 중인 모델 이름 반환"""
        return self._model_name
