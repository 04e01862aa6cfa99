import json
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from fastapi import Depends, FastAPI, Request, Response, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .exceptions import InvalidInput, SessionBusy, SpeechSynthesisFailed
from .models import PersonaStyle, StructuredResponse
from .schemas import (
    ChatRequest,
    CofounderChatRequest,
    CofounderResetRequest,
    MessageOut,
    ResetRequest,
    ResetResponse,
    SpeechRequest,
    TurnResponse,
)
from .services.speech_client import MEDIA_TYPES
from .settings import get_settings
from .tools import COFOUNDER, MARKET_RESEARCH, MENTOR, TOOLS, Toolkit, build_toolkit, session_key
from .tools.cofounder import SCENARIOS, STYLE_DESCRIPTIONS, parse_style
from .tools.session_manager import Reply, SessionManager


def setup_server_logging() -> logging.Logger:
    """Configure and return the server logger."""
    logs_dir = Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("founderdesk")
    if logger.handlers:
        return logger

    logger.setLevel(get_settings().log_level)
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    fh = RotatingFileHandler(logs_dir / "server.log", maxBytes=5_000_000, backupCount=3)
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    return logger


def _cors_origins_list(origins: str) -> list[str]:
    """Parse CORS_ORIGINS into a list."""
    if not origins or origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in origins.split(",") if o.strip()]


LOGGER = setup_server_logging()
settings = get_settings()


def get_toolkit(request: Request) -> Toolkit:
    return request.app.state.toolkit


def _turn_response(manager: SessionManager, key: str, reply: Reply) -> TurnResponse:
    session = manager.get_session(key)
    history = [MessageOut(role=m.role.value, text=m.text) for m in session.history]
    if isinstance(reply, StructuredResponse):
        data = reply.to_dict()
        return TurnResponse(
            session_key=key,
            reply=reply.primary_text,
            sections=data["sections"],
            history=history,
        )
    return TurnResponse(session_key=key, reply=reply, history=history)


def create_app(toolkit: Optional[Toolkit] = None) -> FastAPI:
    """Build the API; a prebuilt toolkit is used as-is and not closed on shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = toolkit is None
        app.state.toolkit = toolkit or build_toolkit(settings)
        LOGGER.info("Toolkit ready: %s", ", ".join(TOOLS))
        yield
        LOGGER.info("Shutting down...")
        if owned:
            await app.state.toolkit.close()

    app = FastAPI(
        title="FounderDesk AI Tools",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins_list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidInput)
    async def invalid_input_handler(request: Request, exc: InvalidInput) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(SessionBusy)
    async def session_busy_handler(request: Request, exc: SessionBusy) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(SpeechSynthesisFailed)
    async def speech_failed_handler(
        request: Request, exc: SpeechSynthesisFailed
    ) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Health check for load balancers and monitoring."""
        return {"status": "ok"}

    @app.post("/api/mentor/messages", response_model=TurnResponse)
    async def mentor_message(
        body: ChatRequest, tools: Toolkit = Depends(get_toolkit)
    ) -> TurnResponse:
        key = session_key(MENTOR, session_id=body.session_id)
        reply = await tools.mentor.submit_turn(key, body.message)
        return _turn_response(tools.mentor, key, reply)

    @app.post("/api/mentor/reset", response_model=ResetResponse)
    async def mentor_reset(
        body: ResetRequest, tools: Toolkit = Depends(get_toolkit)
    ) -> ResetResponse:
        key = session_key(MENTOR, session_id=body.session_id)
        return ResetResponse(session_key=key, greeting=tools.mentor.reset_session(key))

    @app.post("/api/market-research/queries")
    async def market_query(
        body: ChatRequest, tools: Toolkit = Depends(get_toolkit)
    ) -> dict[str, Any]:
        key = session_key(MARKET_RESEARCH, session_id=body.session_id)
        report = await tools.market_research.analyze(key, body.message)
        return {"session_key": key, **asdict(report)}

    @app.post("/api/market-research/reset", response_model=ResetResponse)
    async def market_reset(
        body: ResetRequest, tools: Toolkit = Depends(get_toolkit)
    ) -> ResetResponse:
        key = session_key(MARKET_RESEARCH, session_id=body.session_id)
        return ResetResponse(
            session_key=key, greeting=tools.market_research.reset_session(key)
        )

    @app.get("/api/cofounder/styles")
    async def cofounder_styles() -> list[dict[str, str]]:
        return [
            {"id": style.value, "name": style.display_name, "description": STYLE_DESCRIPTIONS[style]}
            for style in PersonaStyle
        ]

    @app.get("/api/cofounder/scenarios")
    async def cofounder_scenarios() -> list[dict[str, str]]:
        return [
            {"id": scenario.value, "title": info.title, "description": info.description}
            for scenario, info in SCENARIOS.items()
        ]

    @app.post("/api/cofounder/{style}/messages", response_model=TurnResponse)
    async def cofounder_message(
        style: str, body: CofounderChatRequest, tools: Toolkit = Depends(get_toolkit)
    ) -> TurnResponse:
        persona = parse_style(style)
        key = session_key(COFOUNDER, persona.value, body.session_id)
        reply = await tools.cofounder.submit_turn(
            key, body.message, style=persona.value, scenario=body.scenario
        )
        return _turn_response(tools.cofounder, key, reply)

    @app.post("/api/cofounder/{style}/reset", response_model=ResetResponse)
    async def cofounder_reset(
        style: str, body: CofounderResetRequest, tools: Toolkit = Depends(get_toolkit)
    ) -> ResetResponse:
        persona = parse_style(style)
        key = session_key(COFOUNDER, persona.value, body.session_id)
        greeting = tools.cofounder.reset_session(key, persona.value, body.scenario)
        return ResetResponse(session_key=key, greeting=greeting)

    @app.get("/api/speech/voices")
    async def speech_voices(tools: Toolkit = Depends(get_toolkit)) -> list[dict[str, str]]:
        if tools.speech_client is None:
            return []
        return [asdict(voice) for voice in tools.speech_client.available_voices()]

    @app.post("/api/speech")
    async def speech(body: SpeechRequest, tools: Toolkit = Depends(get_toolkit)) -> Response:
        if tools.speech_client is None:
            raise SpeechSynthesisFailed("Text-to-speech is not configured")
        audio = await tools.speech_client.synthesize(
            body.text, voice_id=body.voice_id, output_format=body.output_format
        )
        return Response(content=audio, media_type=MEDIA_TYPES[body.output_format])

    @app.websocket("/ws/chat")
    async def chat_ws(websocket: WebSocket) -> None:
        """WebSocket chat endpoint: one JSON turn in, one JSON reply out.

        Expected Input (JSON):
            {
                "tool": "mentor" | "market_research" | "cofounder",
                "message": str,
                "style": str - co-founder style (cofounder only),
                "scenario": str - co-founder scenario (optional),
                "session_id": str - optional client session id
            }

        Response Format:
            - {"type": "reply", "session_key": str, "reply": str, "sections": dict}
            - {"type": "error", "data": str}
        """
        await websocket.accept()
        tools: Toolkit = websocket.app.state.toolkit
        try:
            raw = await websocket.receive_text()
            try:
                payload = json.loads(raw)
            except json.JSONDecodeError as e:
                LOGGER.error("Invalid WS payload (not JSON): %s", e)
                await websocket.send_json({"type": "error", "data": "Invalid JSON payload"})
                await websocket.close()
                return

            tool = str(payload.get("tool") or MENTOR)
            message = str(payload.get("message") or "")
            style = payload.get("style")
            session_id = payload.get("session_id")

            if tool not in TOOLS:
                await websocket.send_json({"type": "error", "data": f"Unknown tool: {tool}"})
                await websocket.close()
                return

            try:
                key = session_key(tool, style, session_id)
                manager = tools.manager(tool)
                if tool == COFOUNDER:
                    reply = await tools.cofounder.submit_turn(
                        key, message, style=style, scenario=payload.get("scenario")
                    )
                else:
                    reply = await manager.submit_turn(key, message)
            except (InvalidInput, SessionBusy) as e:
                await websocket.send_json({"type": "error", "data": str(e)})
                await websocket.close()
                return

            LOGGER.info("WS turn done tool=%s session=%s", tool, key)
            turn = _turn_response(manager, key, reply)
            await websocket.send_json(
                {
                    "type": "reply",
                    "session_key": turn.session_key,
                    "reply": turn.reply,
                    "sections": turn.sections,
                }
            )
            await websocket.close()

        except WebSocketDisconnect:
            LOGGER.info("WS disconnect")

    return app


app = create_app()
