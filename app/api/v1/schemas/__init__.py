from app.api.v1.schemas.challenge import GenerateChallengeResponse

__all__ = ["GenerateChallengeResponse"]
