from typing import Literal

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from app.core.config import Settings
from app.core.context import new_submission_id
from app.core.exceptions import (
    ClientInputError,
    CustomException,
    ErrorCode,
    InternalError,
)
from app.core.logging import get_logger
from app.domain.challenge.multipart import extract_multipart
from app.domain.challenge.prompts import build_challenge_prompt
from app.domain.challenge.provisioner import RepositoryProvisioner
from app.domain.challenge.schemas import (
    ChallengeState,
    Difficulty,
    ExtractionResult,
    Stage,
    SubmissionEnvelope,
    SubmissionRequest,
    SubmissionResult,
)
from app.infra.llm.client import generate_challenge

logger = get_logger(__name__)

RESUME_FIELD = "resume"
JOB_DESCRIPTION_FIELD = "job_description"
JOB_TITLE_FIELDS = ("job_title", "job_desc_text")
MULTIPART_CONTENT_TYPE = "multipart/form-data"


def _fail(state: ChallengeState, error: CustomException) -> ChallengeState:
    """실패 상태로 전이"""
    logger.warning(
        "파이프라인 실패 stage=%s error_code=%s",
        state.get("stage"),
        error.error_code,
    )
    return {**state, "stage": Stage.FAILED, "error": error}


def _optional_field(extraction: ExtractionResult, *names: str) -> str | None:
    """값이 있는 첫 번째 필드 반환"""
    for name in names:
        value = extraction.fields.get(name, "").strip()
        if value:
            return value
    return None


def validate_extraction(extraction: ExtractionResult) -> SubmissionRequest:
    """추출 결과 검증 후 SubmissionRequest 생성

    Raises:
        ClientInputError: 본문 형식 오류, 파일 누락, 빈 파일, 크기 초과, 잘못된 난이도
    """
    if extraction.malformed:
        raise ClientInputError(
            ErrorCode.MALFORMED_BODY,
            "Malformed multipart form data (unexpected end of form). "
            "Ensure you are sending as multipart/form-data with a proper boundary.",
            detail=extraction.error,
        )

    if extraction.oversized:
        raise ClientInputError(
            ErrorCode.FILE_TOO_LARGE,
            "Uploaded file exceeds the maximum allowed size.",
            extra={"fields": sorted(extraction.oversized)},
        )

    resume_bytes = extraction.files.get(RESUME_FIELD, b"")
    job_description_bytes = extraction.files.get(JOB_DESCRIPTION_FIELD, b"")
    if not resume_bytes or not job_description_bytes:
        raise ClientInputError(
            ErrorCode.MISSING_FILE,
            "Both resume and job description files are required.",
            extra={
                "received": {
                    "resume": bool(resume_bytes),
                    "jobDescription": bool(job_description_bytes),
                }
            },
        )

    resume_text = resume_bytes.decode("utf-8", errors="replace")
    job_description_text = job_description_bytes.decode("utf-8", errors="replace")
    if not resume_text.strip() or not job_description_text.strip():
        raise ClientInputError(
            ErrorCode.EMPTY_FILE,
            "Both files must contain text content.",
        )

    difficulty_value = _optional_field(extraction, "difficulty")
    try:
        difficulty = (
            Difficulty(difficulty_value.lower()) if difficulty_value else Difficulty.INTERMEDIATE
        )
    except ValueError:
        raise ClientInputError(
            ErrorCode.INVALID_DIFFICULTY,
            "Difficulty must be one of: junior, intermediate, senior.",
            detail=difficulty_value,
        ) from None

    return SubmissionRequest(
        resume_text=resume_text,
        job_description_text=job_description_text,
        first_name=_optional_field(extraction, "first_name"),
        last_name=_optional_field(extraction, "last_name"),
        job_title=_optional_field(extraction, *JOB_TITLE_FIELDS),
        difficulty=difficulty,
    )


def should_continue(state: ChallengeState) -> Literal["next", "end"]:
    """에러 상태 확인: 에러 있으면 종료, 없으면 다음 노드로"""
    if state.get("error") is not None:
        return "end"
    return "next"


class ChallengePipeline:
    """챌린지 생성 파이프라인

    receive → extract → validate → build_prompt → complete → provision 순서로
    진행하며, 어느 단계에서든 실패하면 이후 단계를 실행하지 않는다.
    """

    def __init__(
        self,
        config: Settings,
        provisioner: RepositoryProvisioner | None = None,
    ):
        self._config = config
        self._provisioner = provisioner or RepositoryProvisioner(config)
        self._graph = self._build_graph()

    @property
    def config(self) -> Settings:
        return self._config

    def _build_graph(self) -> CompiledStateGraph:
        workflow = StateGraph(ChallengeState)

        nodes = [
            ("receive", self.receive_node),
            ("extract", self.extract_node),
            ("validate", self.validate_node),
            ("build_prompt", self.build_prompt_node),
            ("complete", self.complete_node),
            ("provision", self.provision_node),
        ]
        for name, node in nodes:
            workflow.add_node(name, node)

        workflow.set_entry_point("receive")

        for (name, _), (next_name, _) in zip(nodes, nodes[1:]):
            workflow.add_conditional_edges(
                name,
                should_continue,
                {"next": next_name, "end": END},
            )
        workflow.add_edge("provision", END)

        return workflow.compile()

    async def receive_node(self, state: ChallengeState) -> ChallengeState:
        """요청 메서드와 Content-Type 확인"""
        envelope = state["envelope"]
        state = {**state, "stage": Stage.RECEIVED}

        if envelope.method.upper() != "POST":
            return _fail(
                state,
                ClientInputError(
                    ErrorCode.METHOD_NOT_ALLOWED,
                    "Method not allowed. Use POST.",
                    status_code=405,
                ),
            )

        if MULTIPART_CONTENT_TYPE not in (envelope.content_type or "").lower():
            return _fail(
                state,
                ClientInputError(
                    ErrorCode.BAD_CONTENT_TYPE,
                    "Content-Type must be multipart/form-data",
                ),
            )

        return state

    async def extract_node(self, state: ChallengeState) -> ChallengeState:
        """multipart 본문에서 파일과 필드 추출"""
        envelope = state["envelope"]
        extraction = await extract_multipart(
            envelope.content_type,
            body=envelope.body,
            stream=envelope.stream,
            max_file_size=self._config.multipart_max_file_size,
            max_files=self._config.multipart_max_files,
            timeout=self._config.multipart_timeout,
        )
        if extraction.timed_out:
            logger.warning("multipart 수신 타임아웃, 수신된 데이터로 진행")
        return {**state, "stage": Stage.EXTRACTED, "extraction": extraction}

    async def validate_node(self, state: ChallengeState) -> ChallengeState:
        """추출 결과 검증"""
        try:
            submission = validate_extraction(state["extraction"])
        except ClientInputError as e:
            return _fail(state, e)

        logger.info(
            "제출 검증 완료 difficulty=%s resume_length=%d job_description_length=%d",
            submission.difficulty.value,
            len(submission.resume_text),
            len(submission.job_description_text),
        )
        return {**state, "stage": Stage.VALIDATED, "submission": submission}

    async def build_prompt_node(self, state: ChallengeState) -> ChallengeState:
        """프롬프트 구성"""
        submission = state["submission"]
        try:
            prompt = build_challenge_prompt(
                resume_text=submission.resume_text,
                job_description_text=submission.job_description_text,
                difficulty=submission.difficulty,
                first_name=submission.first_name,
                job_title=submission.job_title,
            )
        except ValueError as e:
            return _fail(state, InternalError(detail=str(e)))

        return {**state, "stage": Stage.PROMPT_BUILT, "prompt": prompt}

    async def complete_node(self, state: ChallengeState) -> ChallengeState:
        """LLM으로 챌린지 생성"""
        try:
            challenge = await generate_challenge(
                state["prompt"],
                config=self._config,
                session_id=state.get("submission_id"),
            )
        except CustomException as e:
            return _fail(state, e)

        return {**state, "stage": Stage.COMPLETED, "challenge": challenge}

    async def provision_node(self, state: ChallengeState) -> ChallengeState:
        """챌린지 레포지토리 생성 및 push"""
        submission = state["submission"]
        try:
            repository = await self._provisioner.provision(
                state["challenge"],
                last_name=submission.last_name,
                job_title=submission.job_title,
            )
        except CustomException as e:
            return _fail(state, e)

        return {**state, "stage": Stage.PROVISIONED, "repository": repository}

    async def run(self, envelope: SubmissionEnvelope) -> SubmissionResult:
        """파이프라인 실행

        Args:
            envelope: HTTP 요청에서 추출한 입력

        Returns:
            에디터 링크와 레포지토리 URL

        Raises:
            CustomException: 어느 단계에서든 실패한 경우
        """
        submission_id = new_submission_id()
        logger.info("파이프라인 시작 method=%s", envelope.method)

        try:
            result = await self._graph.ainvoke(
                ChallengeState(envelope=envelope, submission_id=submission_id)
            )
        except CustomException:
            raise
        except Exception as e:
            logger.error("파이프라인 처리 실패 error=%s", e, exc_info=True)
            raise InternalError(detail=str(e) or type(e).__name__) from e

        error = result.get("error")
        if error is not None:
            raise error

        repository = result["repository"]
        logger.info(
            "파이프라인 완료 stage=%s repo=%s",
            Stage.RESPONDED.value,
            repository.name,
        )
        return SubmissionResult(
            challenge_link=repository.editor_url,
            github_repo=repository.html_url,
        )
