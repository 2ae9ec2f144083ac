"""
Tactical fire-behaviour analysis.
Talks to an OpenAI-compatible chat-completions endpoint (Groq). Without an API
key a rule-based analysis is returned instead so crews still get a risk level
in the field.
"""
from typing import Any, Dict, List, Optional

import httpx
import structlog

from ..config import settings
from ..schemas.burns import WeatherSnapshot


logger = structlog.get_logger()


class AnalysisServiceError(RuntimeError):
    """The analysis service failed or answered with nothing usable."""


class AnalysisUnconfigured(AnalysisServiceError):
    """No API key: features that need the real model are unavailable."""


TRAINING_SYSTEM_PROMPT = """Sei un esperto istruttore GAUF (Gruppo Analisi Uso Fuoco) del Corpo Forestale della Sardegna.

COMPETENZE:
- Fuoco prescritto e Campbell Prediction System (CPS)
- Comportamento del fuoco (ROS, lunghezza fiamma, intensità)
- Allineamento forze (pendenza, vento, esposizione solare)
- Sicurezza operativa (LACES - Lookouts, Anchor points, Communications, Escape routes, Safety zones)
- Meteorologia operativa (umidità, temperatura, vento)
- Modelli di combustibile mediterraneo

ISTRUZIONI:
- Rispondi in italiano tecnico ma accessibile
- Usa markdown per formattazione (elenchi puntati, grassetto, titoli)
- Se non sei sicuro di qualcosa, dillo chiaramente
- Priorità assoluta: SICUREZZA degli operatori"""


def _fmt(value: Optional[float]) -> str:
    if value is None:
        return "N/D"
    return f"{value:g}"


def build_analysis_prompt(weather: WeatherSnapshot, fuel_model: Optional[str], location: Optional[str]) -> str:
    aspect = weather.aspect or "N/D"
    return f"""Agisci come un esperto GAUF (Gruppo Analisi Uso Fuoco) della Sardegna.
Esegui un'analisi tattica basata sul **Campbell Prediction System (CPS)**.

DATI AMBIENTALI:
- Località: {location or "N/D"}
- Temperatura: {_fmt(weather.temperature)}°C
- Umidità Relativa Aria: {_fmt(weather.humidity)}%
- Vento: {_fmt(weather.wind_speed)} km/h
- Pendenza: {_fmt(weather.slope_percent)}%
- Modello Combustibile: {fuel_model or "N/D"}
- Umidità Combustibile (Fine Dead Fuel): {_fmt(weather.fuel_moisture)}%
- Esposizione (Aspect): {aspect}

RICHIESTA:
1. Valuta l'**Allineamento delle Forze** (Pendenza, Vento, Preriscaldamento Solare).
2. Determina se l'esposizione ({aspect}) è "In Allineamento" o "Fuori Allineamento" con il momento della giornata (assumi orario attuale).
3. Stima il Comportamento del Fuoco (ROS stimato e Lunghezza Fiamma).
4. Fornisci la Prescrizione Operativa di sicurezza base LACES.

Fornisci:
1. Livello di Rischio (Basso, Medio, Alto, Estremo)
2. Analisi tecnica sintetica
3. Prescrizione operativa (cosa fare/non fare)

Rispondi in italiano tecnico ma chiaro. Formatta la risposta in Markdown leggero."""


def risk_level(weather: WeatherSnapshot) -> str:
    """Deterministic risk class used when no model is configured."""
    t = weather.temperature if weather.temperature is not None else 20.0
    w = weather.wind_speed if weather.wind_speed is not None else 0.0
    s = weather.slope_percent if weather.slope_percent is not None else 0.0
    if t > 30 or w > 20 or (s > 30 and w > 10):
        return "Alto"
    if t > 25 or w > 10 or s > 20:
        return "Medio"
    return "Basso"


_BEHAVIOUR = {
    "Basso": ("Lento (< 1 m/min)", "Bassa (< 0.5 m)"),
    "Medio": ("Moderato (1-3 m/min)", "Media (0.5 - 1.5 m)"),
    "Alto": ("Veloce (3-10 m/min)", "Alta (> 1.5 m)"),
}


def simulated_analysis(weather: WeatherSnapshot) -> str:
    level = risk_level(weather)
    ros, flame = _BEHAVIOUR[level]
    w = weather.wind_speed or 0.0
    s = weather.slope_percent or 0.0
    alignment = "Allineati (Fattore critico)" if w > 10 and s > 10 else "Non critico"
    return f"""### Analisi Simulata (Modalità Offline)

**Nota:** Questa è un'analisi automatica basata su regole deterministiche (AI non configurata).

#### 1. Livello di Rischio: **{level}**

#### 2. Allineamento delle Forze
*   **Vento/Pendenza:** {alignment}
*   **Comportamento Stimato:**
    *   **ROS (Velocità):** {ros}
    *   **Lunghezza Fiamma:** {flame}

#### 3. Prescrizione Operativa (LACES)
*   **L (Lookout):** Mantenere vedetta costante.
*   **A (Anchor Point):** Partire sempre da zona sicura (es. strada, zona bruciata).
*   **C (Communications):** Radio test prima dell'accensione.
*   **E (Escape Routes):** Identificare vie di fuga per ogni operatore.
*   **S (Safety Zones):** Zone sicure accessibili in meno di 2 minuti.

_Configura una API Key per ottenere analisi AI dettagliate._"""


class AnalysisClient:
    """Client for the chat-completions endpoint"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.groq_api_key
        self.base_url = (base_url or settings.groq_base_url).rstrip("/")
        self.model = model or settings.groq_model
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _complete(self, messages: List[Dict[str, str]], **params: Any) -> str:
        if not self.configured:
            raise AnalysisUnconfigured("GROQ_API_KEY is not configured")
        payload = {"model": self.model, "messages": messages}
        payload.update(params)
        try:
            async with httpx.AsyncClient(timeout=settings.analysis_timeout_s, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json=payload,
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("analysis_request_failed", model=self.model, error=str(e))
            raise AnalysisServiceError(f"analysis request failed: {e}") from e
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not content:
            logger.warning("analysis_empty_response", model=self.model)
            raise AnalysisServiceError("analysis service returned no content")
        return content

    async def analyze(self, weather: WeatherSnapshot, fuel_model: Optional[str], location: Optional[str]) -> str:
        """Markdown narrative for the given conditions."""
        if not self.configured:
            return simulated_analysis(weather)
        prompt = build_analysis_prompt(weather, fuel_model, location)
        return await self._complete([{"role": "user", "content": prompt}])

    async def chat(self, messages: List[Dict[str, str]]) -> str:
        """Training simulator conversation; needs a real model."""
        history = [{"role": m["role"], "content": m["content"]} for m in messages if m.get("role") in ("user", "assistant")]
        return await self._complete(
            [{"role": "system", "content": TRAINING_SYSTEM_PROMPT}] + history,
            temperature=0.7,
            max_tokens=1500,
        )
