# main.py
from datetime import timedelta
import fastapi
import os
from typing import Optional
from fastapi import Request, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel
from court_tracker.auth import (
    User,
    Token,
    UserCreate,
    authenticate_user,
    create_access_token,
    create_user,
    get_current_active_user,
    get_user_by_email,
    get_user_by_username,
    require_secret_key,
    ACCESS_TOKEN_EXPIRE_MINUTES,
)
from court_tracker.config import Settings
from court_tracker.data_models import INITIAL_COURTS, SPORT_METADATA
from court_tracker.database import close_database, open_database
from court_tracker.exceptions import CourtTrackerError, InvalidRequest
from court_tracker.logger import configure_logging, get_logger
from court_tracker.registry import CourtRegistry
from court_tracker.storage import court_store, load_courts, seed_courts
from court_tracker.tracker import CourtTracker

logger = get_logger(__name__)

# FastAPI Setup
app = fastapi.FastAPI(title="Court Tracker")


class CourtRequest(BaseModel):
    court_id: Optional[str] = None


def get_tracker(request: Request) -> CourtTracker:
    return request.app.state.tracker


def require_court_id(body: Optional[CourtRequest]) -> str:
    if body is None or not body.court_id:
        raise InvalidRequest("Court ID is required", field="court_id")
    return body.court_id


@app.exception_handler(CourtTrackerError)
async def tracker_error_handler(request: Request, exc: CourtTrackerError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, **exc.details})


@app.get("/health")
async def health(tracker: CourtTracker = Depends(get_tracker)):
    tracker.sessions.check_invariants()
    return {
        "status": "healthy",
        "active_sessions": len(tracker.sessions.active_sessions()),
        "observers": tracker.broadcaster.count(),
    }


# Court endpoints
@app.get("/api/courts")
async def get_all_courts(tracker: CourtTracker = Depends(get_tracker)):
    return [court.to_dict() for court in tracker.list_courts()]

@app.get("/api/courts/summary")
async def get_courts_summary(tracker: CourtTracker = Depends(get_tracker)):
    return tracker.registry.summary()

@app.get("/api/courts/{court_id}")
async def get_court(court_id: str, tracker: CourtTracker = Depends(get_tracker)):
    return tracker.get_court(court_id).to_dict()

@app.get("/api/sports")
async def get_sports():
    return {sport.value: meta for sport, meta in SPORT_METADATA.items()}


# Check in to a court
@app.post("/api/check-in")
async def check_in(body: Optional[CourtRequest] = None, current_user: User = Depends(get_current_active_user), tracker: CourtTracker = Depends(get_tracker)):
    court_id = require_court_id(body)
    court, session = await tracker.check_in(court_id, current_user.id, current_user.email)
    return {"court": court.to_dict(), "session": session.to_dict(tracker.clock())}

# Check out from a court
@app.post("/api/check-out")
async def check_out(body: Optional[CourtRequest] = None, current_user: User = Depends(get_current_active_user), tracker: CourtTracker = Depends(get_tracker)):
    court_id = require_court_id(body)
    court = await tracker.check_out(court_id)
    logger.info(f"{current_user.username} checked out {court.name}")
    return {"court": court.to_dict()}


@app.get("/api/sessions/me")
async def get_my_session(current_user: User = Depends(get_current_active_user), tracker: CourtTracker = Depends(get_tracker)):
    session = tracker.sessions.active_session_for_user(current_user.id)
    return {"session": session.to_dict(tracker.clock()) if session else None}

@app.get("/api/sessions")
async def get_active_sessions(current_user: User = Depends(get_current_active_user), tracker: CourtTracker = Depends(get_tracker)):
    now = tracker.clock()
    return [session.to_dict(now) for session in tracker.sessions.active_sessions()]

# admin endpoint
@app.post("/api/admin/sweep")
async def sweep_sessions(current_user: User = Depends(get_current_active_user), tracker: CourtTracker = Depends(get_tracker)):
    if current_user.role != "super_admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")
    freed = await tracker.sweep()
    return {"released": [court.id for court in freed]}


# Identity endpoints
@app.get("/api/users/me", response_model=User)
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user

@app.post("/token", response_model=Token)
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user_record = await authenticate_user(form_data.username, form_data.password)
    if not user_record:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token(
        data={"sub": user_record["id"]}, expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return {"access_token": access_token, "token_type": "bearer"}

@app.post("/register", status_code=status.HTTP_201_CREATED)
async def register_user(user: UserCreate):
    if await get_user_by_username(user.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already registered."
        )
    if await get_user_by_email(user.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered."
        )
    record = await create_user(user)
    return {"message": "User created successfully.", "id": record["id"]}


@app.websocket("/ws")
async def websocket_endpoint(websocket: fastapi.WebSocket):
    """
    Streams court events: one full snapshot on connect, then every change.
    """
    tracker: CourtTracker = websocket.app.state.tracker
    await websocket.accept()
    tracker.connect(websocket)

    try:
        # Observers only listen; drain anything they send until they leave
        while True:
            await websocket.receive_text()
    except fastapi.WebSocketDisconnect:
        pass
    finally:
        tracker.disconnect(websocket)


@app.on_event("startup")
async def startup():
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    require_secret_key()

    await open_database()

    await seed_courts(court_store, INITIAL_COURTS)
    registry = CourtRegistry(await load_courts(court_store))
    app.state.tracker = CourtTracker(registry, settings)
    logger.info(f"Tracking {len(registry)} courts, sessions last {settings.session_duration_ms} ms")

    admin_username = os.getenv("ADMIN_USERNAME", "admin")
    admin_email = os.getenv("ADMIN_EMAIL", "admin@courttracker.org")
    if await get_user_by_username(admin_username):
        return
    if await get_user_by_email(admin_email):
        logger.warning(f"Not creating admin '{admin_username}': {admin_email} belongs to another account")
        return
    await create_user(UserCreate(
        username=admin_username,
        full_name="Super Admin",
        email=admin_email,
        password=os.getenv("ADMIN_PASSWORD", "admin123"),
    ), role="super_admin")


@app.on_event("shutdown")
async def shutdown():
    tracker: Optional[CourtTracker] = getattr(app.state, "tracker", None)
    if tracker is not None:
        await tracker.shutdown()
    await close_database()
