"""FastAPI application factory and lifespan management."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from zeninvest.api.auth import LoginRequest, SessionResponse, create_token
from zeninvest.coach_service import CoachService
from zeninvest.db.database import Database
from zeninvest.models.plan import PRESET_STRATEGIES, PSYCHOLOGICAL_STATES
from zeninvest.plan_store import PersistenceError, PlanStoreRegistry
from zeninvest.session import SessionManager

# Global app state — accessible from route handlers
app_state: dict = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    logger.info("Starting ZenInvest...")

    db = Database()
    await db.connect()

    app_state.update({
        "db": db,
        "sessions": SessionManager(db),
        "plan_stores": PlanStoreRegistry(db),
        "coach": CoachService(),
    })

    logger.info(f"ZenInvest ready. AI coach configured: {app_state['coach'].api_key_set}")
    yield

    logger.info("Shutting down ZenInvest...")
    await db.disconnect()
    app_state.clear()


def create_app() -> FastAPI:
    app = FastAPI(
        title="ZenInvest API",
        description="Trade plan journal with AI coaching critiques",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000", "*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Session routes (no auth needed)
    @app.post("/api/session/login", response_model=SessionResponse)
    async def login(req: LoginRequest):
        try:
            user = await app_state["sessions"].login(req.display_name)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except PersistenceError as e:
            raise HTTPException(status_code=503, detail=str(e))
        return SessionResponse(user=user, access_token=create_token(user.id))

    @app.get("/api/session/resume", response_model=SessionResponse)
    async def resume():
        """Pick up the last active session, if any."""
        try:
            user = await app_state["sessions"].resume()
        except PersistenceError as e:
            raise HTTPException(status_code=503, detail=str(e))
        if user is None:
            return SessionResponse()
        return SessionResponse(user=user, access_token=create_token(user.id))

    @app.get("/api/presets")
    async def presets():
        return {
            "strategies": PRESET_STRATEGIES,
            "psychological_states": PSYCHOLOGICAL_STATES,
        }

    @app.get("/api/health")
    async def health():
        coach = app_state.get("coach")
        return {
            "status": "ok",
            "ai_configured": bool(coach and coach.api_key_set),
        }

    # Include routers
    from zeninvest.api.session_routes import router as session_router
    from zeninvest.api.plans import router as plans_router
    from zeninvest.api.dashboard import router as dashboard_router
    from zeninvest.api.settings_routes import router as settings_router

    app.include_router(session_router)
    app.include_router(plans_router)
    app.include_router(dashboard_router)
    app.include_router(settings_router)

    return app
