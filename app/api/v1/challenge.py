from fastapi import APIRouter, Depends, Request

from app.api.v1.schemas import GenerateChallengeResponse
from app.core.config import settings
from app.core.limiter import limiter
from app.core.logging import get_logger
from app.domain.challenge.schemas import SubmissionEnvelope
from app.domain.challenge.workflow import ChallengePipeline

router = APIRouter(prefix="/challenge", tags=["challenge"])
logger = get_logger(__name__)

# POST 외 메서드도 파이프라인으로 넘겨 동일한 405 응답을 만든다
ACCEPTED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def get_pipeline(request: Request) -> ChallengePipeline:
    """앱 단위 파이프라인, 없으면 생성"""
    pipeline = getattr(request.app.state, "challenge_pipeline", None)
    if pipeline is None:
        pipeline = ChallengePipeline(settings)
        request.app.state.challenge_pipeline = pipeline
    return pipeline


async def _build_envelope(request: Request) -> SubmissionEnvelope:
    """요청에서 파이프라인 입력 생성"""
    envelope = SubmissionEnvelope(
        method=request.method,
        content_type=request.headers.get("content-type"),
    )
    if request.method != "POST":
        return envelope

    if settings.multipart_buffer_body:
        envelope.body = await request.body()
    else:
        envelope.stream = request.stream()
    return envelope


@router.api_route(
    "/generate",
    methods=ACCEPTED_METHODS,
    response_model=GenerateChallengeResponse,
    response_model_exclude_none=True,
)
@limiter.limit(settings.rate_limit_generate)
async def generate_challenge(
    request: Request,
    pipeline: ChallengePipeline = Depends(get_pipeline),
) -> GenerateChallengeResponse:
    envelope = await _build_envelope(request)
    result = await pipeline.run(envelope)

    logger.info("챌린지 응답 repo=%s", result.github_repo)
    return GenerateChallengeResponse(
        challenge_link=result.challenge_link,
        github_repo=result.github_repo,
        message=result.message,
    )
