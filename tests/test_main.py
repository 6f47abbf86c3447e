"""app/main.py 테스트"""

import json

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

from app.main import app


class TestHealthCheck:
    """헬스체크 엔드포인트 테스트"""

    @pytest.mark.asyncio
    async def test_health_check_returns_up(self):
        """헬스체크 엔드포인트가 정상 응답을 반환"""
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "UP"}


class TestAppConfiguration:
    """앱 설정 테스트"""

    def test_app_has_correct_title(self):
        """앱 제목이 올바르게 설정됨"""
        assert app.title == "Coding Challenge Generator"

    def test_app_has_correct_version(self):
        """앱 버전이 올바르게 설정됨"""
        assert app.version == "1.0.0"

    def test_router_is_included(self):
        """API 라우터가 포함됨"""
        routes = [getattr(route, "path", None) for route in app.routes]
        assert "/health" in routes
        assert "/api/v1/challenge/generate" in routes

    def test_limiter_attached(self):
        """요청 제한기가 앱 상태에 등록됨"""
        assert app.state.limiter is not None


class TestUnhandledException:
    """처리되지 않은 예외 핸들러 테스트"""

    @pytest.mark.asyncio
    async def test_500_includes_cors_headers(self):
        """미들웨어 바깥에서 만든 500 응답에도 CORS 헤더 포함"""
        handler = app.exception_handlers[Exception]
        request = Request({"type": "http", "method": "POST", "path": "/", "headers": []})

        response = await handler(request, RuntimeError("boom"))

        assert response.status_code == 500
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"
        assert response.headers["access-control-allow-headers"] == "Content-Type, Authorization"
        assert json.loads(response.body)["error_code"] == "INTERNAL_ERROR"
