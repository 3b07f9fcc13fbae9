from fastapi import FastAPI, APIRouter, HTTPException, Depends
from dotenv import load_dotenv
from starlette.middleware.cors import CORSMiddleware
import os
import logging
from pathlib import Path
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, timezone

from measurement_engine import (
    ENGINE_VERSION,
    CalculationResult,
    CalculationStatus,
    MeasurementDomain,
    MeasurementEngine,
)
from calculator_session import CalculatorSession, HistoryEntry

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

SERVICE_NAME = os.environ.get('SERVICE_NAME', 'Measurement Calculator API')
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(title=SERVICE_NAME)

# ==================== CORS CONFIGURATION ====================
# Default allowed origins for local development
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:3001",
    "http://127.0.0.1:3001",
]

cors_origins_env = os.environ.get('CORS_ORIGINS', '')
if cors_origins_env:
    cors_origins = [origin.strip() for origin in cors_origins_env.split(',') if origin.strip()]
else:
    cors_origins = DEFAULT_CORS_ORIGINS

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=cors_origins,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Accept",
        "Origin",
        "Access-Control-Request-Method",
        "Access-Control-Request-Headers",
    ],
    max_age=600,  # Cache preflight for 10 minutes
)

# ==================== SESSION ====================
# One calculator session per process; history is never persisted
calculator_session = CalculatorSession(MeasurementEngine())


def get_session() -> CalculatorSession:
    return calculator_session


def resolve_domain(domain: str) -> MeasurementDomain:
    try:
        return MeasurementEngine.resolve_domain(domain)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ==================== MODELS ====================

class CalculationRequest(BaseModel):
    expression: str = Field(default="", max_length=500)


class CalculationResponse(BaseModel):
    result: CalculationResult
    history: List[HistoryEntry] = []


class HistoryResponse(BaseModel):
    domain: MeasurementDomain
    history: List[HistoryEntry]
    last_result: Optional[CalculationResult] = None


# ==================== HEALTH ENDPOINT ====================
@app.get("/api/health")
async def health_check():
    """Health check endpoint for monitoring"""
    return {
        "ok": True,
        "time": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
        "version": ENGINE_VERSION
    }

api_router = APIRouter(prefix="/api")


# ==================== CALCULATION ROUTES ====================

@api_router.post("/{domain}/calculate", response_model=CalculationResponse)
async def calculate(domain: str, data: CalculationRequest, session: CalculatorSession = Depends(get_session)):
    """Calculate an expression and record it in the domain history on success"""
    measurement_domain = resolve_domain(domain)
    result = session.calculate(measurement_domain, data.expression)

    if result.status == CalculationStatus.ERROR:
        raise HTTPException(status_code=400, detail=result.errors)

    return CalculationResponse(result=result, history=session.history(measurement_domain))


@api_router.post("/{domain}/preview", response_model=CalculationResponse)
async def preview(domain: str, data: CalculationRequest, session: CalculatorSession = Depends(get_session)):
    """Calculate without touching history"""
    measurement_domain = resolve_domain(domain)
    result = session.preview(measurement_domain, data.expression)

    if result.status == CalculationStatus.ERROR:
        raise HTTPException(status_code=400, detail=result.errors)

    return CalculationResponse(result=result, history=session.history(measurement_domain))


@api_router.get("/{domain}/history", response_model=HistoryResponse)
async def get_history(domain: str, session: CalculatorSession = Depends(get_session)):
    measurement_domain = resolve_domain(domain)
    return HistoryResponse(
        domain=measurement_domain,
        history=session.history(measurement_domain),
        last_result=session.last_result(measurement_domain)
    )


@api_router.delete("/{domain}/history")
async def clear_history(domain: str, session: CalculatorSession = Depends(get_session)):
    measurement_domain = resolve_domain(domain)
    session.clear_history(measurement_domain)
    logger.info(f"{measurement_domain.value} history cleared")
    return {"message": f"{measurement_domain.value} history cleared"}


app.include_router(api_router)


@app.on_event("startup")
async def startup_event():
    logger.info(f"{SERVICE_NAME} {ENGINE_VERSION} started; CORS origins: {', '.join(cors_origins)}")
