"""챌린지 API 스키마."""

from pydantic import BaseModel, ConfigDict, Field


class GenerateChallengeResponse(BaseModel):
    """챌린지 생성 응답."""

    model_config = ConfigDict(populate_by_name=True)

    challenge_link: str = Field(alias="challengeLink")
    github_repo: str = Field(alias="githubRepo")
    message: str | None = None
