from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..schemas.burns import FuelModel, WeatherSnapshot
from ..services.analysis import AnalysisServiceError, AnalysisUnconfigured
from ..services.container import AppServices, get_services


router = APIRouter(tags=["analysis"])
logger = structlog.get_logger()


class AnalyzeRequest(BaseModel):
    weather: WeatherSnapshot = Field(default_factory=WeatherSnapshot)
    fuel_model: Optional[FuelModel] = None
    location: Optional[str] = None


class ChatMessage(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage]


@router.post("/analyze")
async def analyze(req: AnalyzeRequest, services: AppServices = Depends(get_services)):
    """Analysis text for the given conditions; on failure ``result`` is null."""
    try:
        text = await services.analysis.analyze(
            req.weather,
            req.fuel_model.value if req.fuel_model else None,
            req.location,
        )
    except AnalysisServiceError as e:
        logger.warning("analysis_failed", error=str(e))
        return {"result": None, "error": "Errore durante l'analisi AI. Riprova."}
    return {"result": text, "error": None}


@router.post("/chat")
async def chat(req: ChatRequest, services: AppServices = Depends(get_services)):
    if not req.messages:
        raise HTTPException(status_code=422, detail="messages must not be empty")
    try:
        reply = await services.analysis.chat([m.model_dump() for m in req.messages])
    except AnalysisUnconfigured:
        raise HTTPException(status_code=503, detail="API Key mancante. Configura GROQ_API_KEY.")
    except AnalysisServiceError as e:
        logger.warning("chat_failed", error=str(e))
        raise HTTPException(status_code=502, detail="Errore di connessione con l'istruttore AI.")
    return {"reply": reply}
