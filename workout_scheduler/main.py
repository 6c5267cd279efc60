import os
import sys
import time
import logging
from datetime import date
from typing import List

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Path, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .models import DaySchedule, MonthCalendar, MonthStats, Routine, RoutineCreate, ToggleRequest, ToggleResponse
from .service import CalendarService
from .store import StorageError

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(name)s:%(levelname)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("workout_scheduler")

app = FastAPI(title="Workout Calendar API", version="0.1.0")

# CORS (allow Streamlit on localhost)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

service = CalendarService.from_config()


def get_service() -> CalendarService:
    return service


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} in {time.time() - start_time:.3f}s"
    )
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()!r}")
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


@app.get("/health")
def health():
    return {"status": "ok"}


# --- routines ---
@app.get("/routines", response_model=List[Routine])
def list_routines(svc: CalendarService = Depends(get_service)):
    svc.ensure_loaded()
    return svc.routines


@app.post("/routines", response_model=Routine, status_code=201)
def create_routine(body: RoutineCreate, svc: CalendarService = Depends(get_service)):
    try:
        return svc.create_routine(body)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to save workout routine: {e}")


@app.delete("/routines/{routine_id}")
def delete_routine(routine_id: str, svc: CalendarService = Depends(get_service)):
    try:
        deleted = svc.delete_routine(routine_id)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete workout routine: {e}")
    if not deleted:
        raise HTTPException(status_code=404, detail="Routine not found")
    return {"status": "deleted", "id": routine_id}


# --- schedule & completions ---
@app.get("/schedule/{day}", response_model=DaySchedule)
def day_schedule(day: date, svc: CalendarService = Depends(get_service)):
    return svc.day_schedule(day)


@app.post("/completions/toggle", response_model=ToggleResponse)
def toggle_completion(body: ToggleRequest, svc: CalendarService = Depends(get_service)):
    try:
        return svc.toggle(body.date, body.routine_id, body.exercise_id)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to save completions: {e}")


# --- calendar ---
def calendar_or_422(svc: CalendarService, year: int, month: int) -> MonthCalendar:
    try:
        return svc.month_calendar(year, month)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.get("/calendar/{year}/{month}", response_model=MonthCalendar)
def month_calendar(
    year: int = Path(ge=1, le=9999),
    month: int = Path(ge=1, le=12),
    svc: CalendarService = Depends(get_service),
):
    return calendar_or_422(svc, year, month)


@app.get("/calendar/{year}/{month}/stats", response_model=MonthStats)
def month_calendar_stats(
    year: int = Path(ge=1, le=9999),
    month: int = Path(ge=1, le=12),
    svc: CalendarService = Depends(get_service),
):
    return calendar_or_422(svc, year, month).stats
