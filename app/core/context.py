"""
요청 및 제출 컨텍스트 관리 모듈

contextvars를 사용하여 동시에 처리되는 요청 사이에서도 request_id와 submission_id를 분리
"""

import uuid
from contextvars import ContextVar

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
submission_id_var: ContextVar[str | None] = ContextVar("submission_id", default=None)


def get_request_id() -> str | None:
    """현재 컨텍스트의 request_id 반환"""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """
    request_id 설정

    인자가 없으면 8자리 UUID 자동 생성
    """
    if request_id is None:
        request_id = uuid.uuid4().hex[:8]
    request_id_var.set(request_id)
    return request_id


def get_submission_id() -> str | None:
    """현재 컨텍스트의 submission_id 반환"""
    return submission_id_var.get()


def new_submission_id() -> str:
    """챌린지 제출 한 건을 식별하는 ID 생성 후 컨텍스트에 설정"""
    submission_id = str(uuid.uuid4())
    submission_id_var.set(submission_id)
    return submission_id


def clear_context() -> None:
    """모든 컨텍스트 변수 초기화"""
    request_id_var.set(None)
    submission_id_var.set(None)
