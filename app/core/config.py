from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """애플리케이션 설정"""

    environment: str = "development"

    # LLM 프로바이더 선택: "openai" 또는 "vllm"
    llm_provider: str = "openai"

    # OpenAI 설정
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_timeout: float = 300.0
    openai_temperature: float = 0.7
    openai_max_tokens: int = 6000

    # vLLM 설정 - OpenAI 호환 엔드포인트
    vllm_api_url: str = ""
    vllm_api_key: str = ""
    vllm_model: str = ""
    vllm_timeout: float = 300.0

    # GitHub
    github_token: str = ""
    github_username: str = ""
    github_api_base: str = "https://api.github.com"
    github_timeout: float = 60.0

    # git 커밋 작성자 - 비어 있으면 계정 정보로 대체
    git_author_name: str = ""
    git_author_email: str = ""
    git_timeout: float = 120.0

    # 챌린지 레포지토리 설정
    challenge_repo_base_name: str = "oddball-code-challenge-repo"
    challenge_branch_name: str = "feature/initial-setup"
    challenge_repo_description: str = "Automated coding challenge repository"
    editor_base_url: str = "https://vscode.dev/github"

    # multipart 설정
    multipart_max_file_size: int = 10 * 1024 * 1024
    multipart_max_files: int = 2
    multipart_timeout: float = 15.0
    # false면 본문을 버퍼링하지 않고 스트림으로 파싱
    multipart_buffer_body: bool = True

    # 요청 제한
    rate_limit_enabled: bool = True
    rate_limit_generate: str = "5/minute"

    # 로깅 설정
    log_level: str = "INFO"

    # Langfuse 설정
    langfuse_public_key: str = ""
    langfuse_secret_key: str = ""
    langfuse_base_url: str = "https://cloud.langfuse.com"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def validate_for_production(self) -> list[str]:
        """프로덕션 환경에서 필수 설정 검증 후 누락된 항목 반환"""
        errors = []
        if self.llm_provider == "vllm":
            if not self.vllm_api_url:
                errors.append("VLLM_API_URL")
        elif not self.openai_api_key:
            errors.append("OPENAI_API_KEY")
        if not self.github_token:
            errors.append("GITHUB_TOKEN")
        return errors

    @model_validator(mode="after")
    def validate_limits(self):
        """multipart 제한값 검증"""
        if self.multipart_max_file_size <= 0:
            raise ValueError("MULTIPART_MAX_FILE_SIZE는 0보다 커야 합니다")
        if self.multipart_max_files < 2:
            raise ValueError("MULTIPART_MAX_FILES는 2 이상이어야 합니다")
        return self


settings = Settings()
