"""HTTP 接口。

- POST    /api/ai-proxy  代理对话
- OPTIONS /api/ai-proxy  CORS 预检
- GET     /api/health    配置自检（只返回布尔值）
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as SchemaError
from starlette.concurrency import run_in_threadpool

from proxy_core.agents.proxy_agent import ProxyAgent
from proxy_core.api import service
from proxy_core.api.schemas import ProxyRequest
from proxy_core.config.settings import settings
from proxy_core.domain.exceptions import ValidationError
from proxy_core.infrastructure.logging.logger import logger


PROXY_PATH = "/api/ai-proxy"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def _error(status: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message, "code": code})


def create_app(agent: Optional[ProxyAgent] = None, cfg=None) -> FastAPI:
    cfg = cfg or settings
    app = FastAPI(title="Tangkhul AI Proxy", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    app.state.agent = agent or service.build_agent(cfg)

    @app.exception_handler(ValidationError)
    async def _validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(exc.http_status, exc.code, exc.message)

    @app.options(PROXY_PATH)
    async def ai_proxy_preflight() -> Response:
        return Response(status_code=200, headers=CORS_HEADERS)

    @app.post(PROXY_PATH)
    async def ai_proxy(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            return _error(400, "INVALID_JSON", "Request body is not valid JSON")
        if not isinstance(body, dict):
            return _error(400, "INVALID_REQUEST", "Request body must be a JSON object")
        try:
            req = ProxyRequest.model_validate(body)
        except SchemaError as e:
            logger.info("Rejected malformed request", extra={"extra": {"errors": e.error_count()}})
            return _error(400, "INVALID_REQUEST", "Request must carry a 'message' string or a 'messages' list")
        payload = req.to_payload()
        try:
            result = await run_in_threadpool(service.run_proxy_chat, payload, request.app.state.agent, cfg)
        except ValidationError:
            raise
        except Exception:
            logger.exception("Unhandled proxy error")
            result = service.local_fallback_reply(payload.get("conversationId")).to_dict()
        return JSONResponse(content=result)

    @app.get("/api/health")
    async def health() -> dict:
        return service.health_status(cfg)

    return app
