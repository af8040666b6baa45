import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from bq_viewer.api.router import api_router
from bq_viewer.core.config import settings
from bq_viewer.core.errors import error_response, register_exception_handlers
from bq_viewer.core.session import session

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


class BodySizeLimitMiddleware:
    """
    Reject requests whose body is larger than the limit.

    The body is counted as it arrives, so chunked uploads without a
    Content-Length are caught too. Accepted bodies are replayed to the app.
    """

    def __init__(self, app: ASGIApp, max_body_size: int):
        self.app = app
        self.max_body_size = max_body_size

    async def reject(self, scope: Scope, receive: Receive, send: Send):
        response = error_response(413, "Request body too large")
        await response(scope, receive, send)

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length and content_length.isdigit():
            if int(content_length) > self.max_body_size:
                await self.reject(scope, receive, send)
                return

        messages = []
        received = 0
        more_body = True
        while more_body:
            message = await receive()
            messages.append(message)
            if message["type"] != "http.request":
                break
            received += len(message.get("body", b""))
            if received > self.max_body_size:
                await self.reject(scope, receive, send)
                return
            more_body = message.get("more_body", False)

        async def replay() -> Message:
            if messages:
                return messages.pop(0)
            return await receive()

        await self.app(scope, replay, send)


@asynccontextmanager
async def lifespan(app: FastAPI):
    banner = "=" * 50
    logger.info(banner)
    logger.info("BigQuery Data Viewer Server")
    logger.info(banner)
    logger.info(f"Running on: http://localhost:{settings.PORT}")
    logger.info(banner)
    yield
    # Drop the live client on shutdown, nothing is persisted
    await session.disconnect()


app = FastAPI(title="BigQuery Data Viewer API", lifespan=lifespan)

app.add_middleware(BodySizeLimitMiddleware, max_body_size=settings.MAX_BODY_SIZE)
# Added last so it wraps everything, error responses included
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include the master router containing all our endpoints
app.include_router(api_router)

# The front-end goes last so it never shadows an API route
if os.path.isdir(settings.STATIC_DIR):
    app.mount(
        "/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="static"
    )
else:
    logger.warning(f"Static directory {settings.STATIC_DIR} not found, front-end disabled")


def run():
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
