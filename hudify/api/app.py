"""FastAPI app, CORS, and route registration."""
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hudify.config import LOG_LEVEL, ensure_data_dir, log_environment

# Configure logging in the worker process (so flow INFO logs are visible with uvicorn --reload)
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(levelname)s: %(name)s: %(message)s",
)

from hudify.api.state import AppState, get_state

# Import routes after state to avoid circular imports
from hudify.api.routes import session, settings, spotify

__all__ = ["app", "AppState", "get_state"]

_state = get_state()


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_data_dir()
    log_environment()
    # Refuse to start without a usable encryption key; loads stored credentials
    vault = _state.vault
    logging.getLogger(__name__).info("Credential vault ready (%d users)", len(vault))

    yield

    machine = _state.machine
    for user_id in machine.registry:
        machine.end_session(user_id)


app = FastAPI(
    title="Hudify API",
    description="Voice and head-gesture Spotify control for heads-up wearables",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(spotify.router, tags=["spotify"])
app.include_router(settings.router, prefix="/settings", tags=["settings"])
app.include_router(session.router, tags=["session"])


@app.get("/health")
def health(state: AppState = Depends(get_state)):
    return {"ok": True, "sessions": len(state.machine.registry)}
