import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from routes.connect_chat_route import router as connect_chat_router, unsupported_operation
from services.relay.connect_provider import AmazonConnectProvider
from services.relay.relay_service import RelayService
from utils.settings import ConnectSettings

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

logger = logging.getLogger(__name__)

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize the relay service backed by Amazon Connect
    and attach it to `app.state`, unless one was injected already.
    """
    if getattr(app.state, "relay_service", None) is None:
        try:
            settings = ConnectSettings.from_env()
        except RuntimeError:
            logger.error("Relay configuration is incomplete")
            raise
        app.state.relay_service = RelayService(AmazonConnectProvider(settings))
        logger.info("Relay service ready for region %s", settings.region)
    yield


def create_app(relay_service: Optional[RelayService] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)
    app.state.relay_service = relay_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "DELETE"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError):
        """Report malformed request bodies as 400 responses."""
        return JSONResponse(status_code=400, content={"detail": jsonable_errors(exc)})

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that verifies the relay service is configured.
        """
        has_relay = getattr(request.app.state, "relay_service", None) is not None
        return {"ok": True, "relay_available": has_relay}

    # Register application routers
    app.include_router(connect_chat_router)

    @app.api_route("/{path:path}", methods=ALL_METHODS, include_in_schema=False)
    async def unsupported_path(request: Request, path: str):
        raise unsupported_operation(request.method, request.url.path, known_path=False)

    return app


def jsonable_errors(exc: RequestValidationError):
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]


app = create_app()
