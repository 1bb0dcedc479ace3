from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from .config import load_settings
from .errors import FetchError, GenerationInProgress
from .models import ChatRequest, ConversationMessage, FilterRequest, ViewSnapshot
from .state import AdvisorState, UnknownAction

BASE_DIR = Path(__file__).resolve().parent
STATIC_DIR = BASE_DIR / "static"

ENV_PATH = BASE_DIR / ".." / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH, override=True)

log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
log_level = getattr(logging, log_level_name, logging.INFO)
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

logging.getLogger("routine_advisor").setLevel(log_level)
logger = logging.getLogger("routine_advisor.app")


def create_app(state: Optional[AdvisorState] = None) -> FastAPI:
    """Purpose: Build the FastAPI app around one AdvisorState.
    Inputs/Outputs: Input is an optional prebuilt state; returns the app.
    Side Effects / State: Without a state, reads settings and opens the JSON store.
    Dependencies: AdvisorState.dispatch for every mutating route.
    Failure Modes: Unknown actions map to HTTP 400 and overlapping generation to 409;
        catalog preload failures are only logged.
    If Removed: The widget has no HTTP surface.
    Testing Notes: Pass a state with a MemoryStore and a stub generator.
    """
    advisor = state if state is not None else AdvisorState.from_settings(load_settings())

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        # Preload so chip labels resolve before the first filter event.
        try:
            await advisor.catalog.all()
        except FetchError as exc:
            logger.warning("catalog preload failed error=%s", exc)
        yield

    app = FastAPI(title="Routine Advisor", lifespan=lifespan)
    app.state.advisor = advisor
    if STATIC_DIR.is_dir():
        app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    async def run(action: str, **params: object) -> ViewSnapshot:
        try:
            return await advisor.dispatch(action, **params)
        except UnknownAction as exc:
            raise HTTPException(status_code=400, detail=f"Unknown action: {exc}") from exc
        except GenerationInProgress as exc:
            raise HTTPException(status_code=409, detail="Please wait for the current reply to finish.") from exc

    @app.get("/", include_in_schema=False)
    def serve_index() -> FileResponse:
        return FileResponse(STATIC_DIR / "index.html")

    @app.get("/api/state", response_model=ViewSnapshot)
    async def get_state() -> ViewSnapshot:
        return advisor.snapshot()

    @app.get("/api/categories")
    async def list_categories() -> List[str]:
        try:
            await advisor.catalog.all()
        except FetchError:
            return []
        return advisor.catalog.categories()

    @app.post("/api/filters", response_model=ViewSnapshot)
    async def set_filters(request: FilterRequest) -> ViewSnapshot:
        return await run("filter", category=request.category, query=request.query)

    @app.post("/api/selection/{product_id}/toggle", response_model=ViewSnapshot)
    async def toggle_selection(product_id: str) -> ViewSnapshot:
        return await run("toggle", product_id=product_id)

    @app.delete("/api/selection/{product_id}", response_model=ViewSnapshot)
    async def remove_selection(product_id: str) -> ViewSnapshot:
        return await run("remove", product_id=product_id)

    @app.delete("/api/selection", response_model=ViewSnapshot)
    async def clear_selection() -> ViewSnapshot:
        return await run("clear")

    @app.post("/api/routine", response_model=ViewSnapshot)
    async def generate_routine() -> ViewSnapshot:
        return await run("generate")

    @app.post("/api/chat", response_model=ViewSnapshot)
    async def chat(request: ChatRequest) -> ViewSnapshot:
        return await run("ask", question=request.message)

    @app.get("/api/conversation", response_model=List[ConversationMessage])
    async def get_conversation() -> List[ConversationMessage]:
        return advisor.conversation.all()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
