"""
HTTP route for the model proxy.

Run with ``uvicorn services.ai_service.http_app:app --port 8765``.
"""

from json import JSONDecodeError
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from services.ai_service.model_proxy import EMPTY_MESSAGES, ModelProxy, get_model_proxy
from utils.logging_config import get_logger

logger = get_logger(__name__)


def create_app(proxy: Optional[ModelProxy] = None) -> FastAPI:
    """Build the proxy application; ``proxy`` is injectable for tests"""
    api = FastAPI(title="Voice Assistant Model Proxy", version="1.0.0")

    def resolve_proxy() -> ModelProxy:
        return proxy or get_model_proxy()

    @api.get("/health")
    async def health():
        return {"status": "ok"}

    @api.post("/api/chat")
    async def chat(request: Request):
        try:
            payload = await request.json()
        except (JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Rejected malformed chat request: {e}")
            return JSONResponse({"error": EMPTY_MESSAGES, "details": "Body is not valid JSON"}, status_code=400)

        status, body = await resolve_proxy().handle(payload)
        return JSONResponse(body, status_code=status)

    return api


app = create_app()
