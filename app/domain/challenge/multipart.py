"""
multipart/form-data 추출

python-multipart 저수준 파서의 콜백을 누적기(MultipartAccumulator)로 모으고,
종료 이벤트(complete, error, timeout) 중 하나로 단일 ExtractionResult를 만든다.
"""

import asyncio
from collections.abc import AsyncIterator
from enum import Enum

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from app.core.logging import get_logger
from app.domain.challenge.schemas import ExtractionResult

logger = get_logger(__name__)


class MultipartEvent(str, Enum):
    """추출 종료 이벤트"""

    COMPLETE = "complete"
    ERROR = "error"
    TIMEOUT = "timeout"


class MultipartAccumulator:
    """파서 콜백을 받아 파트별 데이터를 누적하는 상태 기계"""

    def __init__(self, boundary: bytes, max_file_size: int, max_files: int):
        self.max_file_size = max_file_size
        self.max_files = max_files

        self._files: dict[str, bytes] = {}
        self._fields: dict[str, str] = {}
        self._oversized: set[str] = set()
        self._file_count = 0

        self._header_field = b""
        self._header_value = b""
        self._headers: dict[bytes, bytes] = {}
        self._part_name: str | None = None
        self._part_is_file = False
        self._part_skipped = False
        self._part_data = bytearray()

        self._ended = False
        self._error: str | None = None
        self._result: ExtractionResult | None = None

        self._parser = MultipartParser(
            boundary,
            callbacks={
                "on_part_begin": self._on_part_begin,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
                "on_headers_finished": self._on_headers_finished,
                "on_end": self._on_end,
            },
        )

    @property
    def finished(self) -> bool:
        return self._result is not None

    def feed(self, chunk: bytes) -> None:
        """수신한 바이트를 파서에 전달, 파싱 오류는 error 이벤트로 기록"""
        if self.finished or self._error is not None or not chunk:
            return
        try:
            self._parser.write(chunk)
        except MultipartParseError as e:
            logger.warning("multipart 파싱 오류 error=%s", e)
            self._error = str(e)

    def finish(self, event: MultipartEvent | None = None) -> ExtractionResult:
        """종료 이벤트로 결과 확정, 이미 확정됐으면 기존 결과 반환"""
        if self._result is not None:
            return self._result

        if event is None:
            event = MultipartEvent.COMPLETE if self._ended else MultipartEvent.ERROR

        error = self._error
        if event == MultipartEvent.ERROR and error is None:
            error = "Unexpected end of form"

        self._result = ExtractionResult(
            files=dict(self._files),
            fields=dict(self._fields),
            oversized=set(self._oversized),
            malformed=event == MultipartEvent.ERROR,
            timed_out=event == MultipartEvent.TIMEOUT,
            error=error,
        )
        logger.info(
            "multipart 추출 종료 event=%s files=%s fields=%s",
            event.value,
            sorted(self._files),
            sorted(self._fields),
        )
        return self._result

    def _on_part_begin(self) -> None:
        self._headers = {}
        self._part_name = None
        self._part_is_file = False
        self._part_skipped = False
        self._part_data = bytearray()

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._headers[self._header_field.lower()] = self._header_value
        self._header_field = b""
        self._header_value = b""

    def _on_headers_finished(self) -> None:
        _, options = parse_options_header(self._headers.get(b"content-disposition"))
        name = options.get(b"name")
        self._part_name = name.decode("utf-8", errors="replace") if name else None
        self._part_is_file = b"filename" in options

        if self._part_name is None:
            logger.warning("name 없는 multipart 파트 무시")
            self._part_skipped = True
            return

        if self._part_is_file:
            self._file_count += 1
            if self._file_count > self.max_files:
                logger.warning(
                    "파일 개수 제한 초과, 파트 무시 field=%s limit=%d",
                    self._part_name,
                    self.max_files,
                )
                self._part_skipped = True
                return
            filename = options.get(b"filename", b"").decode("utf-8", errors="replace")
            logger.info("파일 수신 시작 field=%s filename=%s", self._part_name, filename)

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        if self._part_skipped:
            return

        chunk = data[start:end]
        if self._part_is_file:
            remaining = self.max_file_size - len(self._part_data)
            if len(chunk) > remaining:
                if self._part_name not in self._oversized:
                    logger.warning(
                        "파일 크기 제한 초과 field=%s limit=%d",
                        self._part_name,
                        self.max_file_size,
                    )
                self._oversized.add(self._part_name)
                chunk = chunk[: max(remaining, 0)]
        self._part_data.extend(chunk)

    def _on_part_end(self) -> None:
        if self._part_skipped or self._part_name is None:
            return

        if self._part_is_file:
            self._files[self._part_name] = bytes(self._part_data)
            logger.info("파일 수신 완료 field=%s size=%d", self._part_name, len(self._part_data))
        else:
            self._fields[self._part_name] = self._part_data.decode("utf-8", errors="replace")

    def _on_end(self) -> None:
        self._ended = True


def parse_boundary(content_type: str | None) -> bytes | None:
    """Content-Type 헤더에서 boundary 추출"""
    if not content_type:
        return None
    media_type, options = parse_options_header(content_type)
    if media_type != b"multipart/form-data":
        return None
    boundary = options.get(b"boundary")
    return boundary or None


async def _consume(stream: AsyncIterator[bytes], accumulator: MultipartAccumulator) -> None:
    async for chunk in stream:
        accumulator.feed(chunk)


async def extract_multipart(
    content_type: str | None,
    body: bytes | None = None,
    stream: AsyncIterator[bytes] | None = None,
    *,
    max_file_size: int,
    max_files: int,
    timeout: float,
) -> ExtractionResult:
    """multipart 본문에서 파일과 필드를 추출

    Args:
        content_type: 요청 Content-Type 헤더
        body: 전체가 버퍼링된 본문, 있으면 stream보다 우선
        stream: 본문 바이트 스트림
        max_file_size: 파일당 최대 바이트 수
        max_files: 최대 파일 개수
        timeout: 스트림 수신 안전 타임아웃(초)

    Returns:
        ExtractionResult, 프레이밍 오류는 예외 대신 malformed로 표시
    """
    boundary = parse_boundary(content_type)
    if boundary is None:
        logger.warning("multipart boundary 없음 content_type=%s", content_type)
        return ExtractionResult(malformed=True, error="Missing multipart boundary")

    accumulator = MultipartAccumulator(boundary, max_file_size, max_files)

    if body is not None:
        logger.info("버퍼링된 본문 사용 bytes=%d", len(body))
        accumulator.feed(body)
        return accumulator.finish()

    if stream is None:
        return accumulator.finish(MultipartEvent.ERROR)

    try:
        await asyncio.wait_for(_consume(stream, accumulator), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("multipart 수신 타임아웃, 수신된 데이터로 종료 timeout=%.1f", timeout)
        return accumulator.finish(MultipartEvent.TIMEOUT)

    return accumulator.finish()
