"""
Burn workspace.

The in-progress operation an operator is preparing: form values, crew
selection, the analysis text and the one drawn area. All changes go through the
methods below; routes never poke at the fields directly.
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import structlog
from pydantic import BaseModel, Field

from ..schemas.burns import (
    FuelModel,
    OperationRecord,
    PersonnelHours,
    PersonRecord,
    WeatherSnapshot,
)
from .connectivity import ConnectivitySignal, SignalEvent, SignalMessage
from .geometry import AreaStats, EMPTY_STATS, clean_ring, polygon_stats, ring_to_geojson
from .lookups import CurrentConditions, LookupClient, LookupFailed
from .personnel import build_personnel_hours


logger = structlog.get_logger()

WEATHER_KEYS = ("temp", "humidity", "wind", "slope", "fuel_moisture", "aspect")
FORM_KEYS = ("name", "location", "fuel_model") + WEATHER_KEYS


class WeatherLockedError(ValueError):
    """Weather fields cannot change while an analysis made from them is attached."""


class TeamSelection(BaseModel):
    selected_ids: List[str] = Field(default_factory=list)
    hours_log: Dict[str, str] = Field(default_factory=dict)
    personnel: PersonnelHours = Field(default_factory=PersonnelHours)


class DrawnArea(BaseModel):
    vertices: List[Tuple[float, float]]
    area_ha: float
    perimeter_m: int
    center: Optional[Tuple[float, float]] = None
    center_label: str = ""


class BurnWorkspace:
    def __init__(self) -> None:
        self.reset_all()

    def reset_all(self) -> None:
        self.name: str = ""
        self.location: str = ""
        self.fuel_model: Optional[FuelModel] = None
        self.weather = WeatherSnapshot()
        self.team = TeamSelection()
        self.report: Optional[str] = None
        self.area: Optional[DrawnArea] = None
        self.notice: Optional[str] = None

    @property
    def weather_locked(self) -> bool:
        return self.report is not None

    def update_form(self, changes: Mapping[str, Any]) -> None:
        """Apply form changes all together, or none of them when any is invalid."""
        unknown = set(changes) - set(FORM_KEYS)
        if unknown:
            raise ValueError(f"unknown form fields: {', '.join(sorted(unknown))}")

        weather = self.weather
        weather_changes = {k: v for k, v in changes.items() if k in WEATHER_KEYS}
        if weather_changes:
            merged = WeatherSnapshot.model_validate({**self.weather.to_wire(), **weather_changes})
            if merged != self.weather:
                if self.weather_locked:
                    raise WeatherLockedError("weather snapshot is locked by the current analysis")
                weather = merged

        fuel_model = self.fuel_model
        if "fuel_model" in changes:
            raw = changes["fuel_model"]
            fuel_model = FuelModel(raw) if raw not in (None, "") else None

        self.weather = weather
        self.fuel_model = fuel_model
        if "name" in changes:
            self.name = str(changes["name"] or "")
        if "location" in changes:
            self.location = str(changes["location"] or "")

    def apply_conditions(self, conditions: CurrentConditions) -> None:
        fields = {k: v for k, v in conditions.form_fields().items() if v is not None}
        if fields:
            self.update_form(fields)

    def apply_position(self, lat: float, lon: float) -> None:
        self.location = f"{lat:.4f}, {lon:.4f}"

    def set_team_selection(
        self,
        roster: List[PersonRecord],
        selected_ids: Iterable[str],
        hours_log: Mapping[str, Any],
    ) -> PersonnelHours:
        selected = [str(i) for i in selected_ids]
        # Hours of deselected people are dropped with them
        log = {str(k): str(v) for k, v in hours_log.items() if str(k) in set(selected)}
        personnel = build_personnel_hours(roster, selected, log)
        self.team = TeamSelection(selected_ids=selected, hours_log=log, personnel=personnel)
        return personnel

    def set_report(self, text: Optional[str]) -> None:
        self.report = text or None

    def replace_area(self, vertices: Any) -> DrawnArea:
        """A new drawing always replaces the previous one."""
        ring = clean_ring(vertices)
        stats: AreaStats = polygon_stats(ring)
        self.area = DrawnArea(
            vertices=ring,
            area_ha=stats.area_ha,
            perimeter_m=stats.perimeter_m,
            center=stats.center,
            center_label=stats.center_label,
        )
        return self.area

    def clear_area(self) -> None:
        self.area = None

    def area_stats(self) -> Dict[str, Any]:
        if self.area is None:
            return EMPTY_STATS.as_dict()
        return {
            "area_ha": self.area.area_ha,
            "perimeter_m": self.area.perimeter_m,
            "center": list(self.area.center) if self.area.center else None,
            "center_label": self.area.center_label,
        }

    def build_record(self) -> OperationRecord:
        return OperationRecord.new(
            name=self.name,
            location_label=self.location,
            fuel_model=self.fuel_model,
            weather=self.weather,
            area_geojson=ring_to_geojson(self.area.vertices) if self.area else None,
            ai_report=self.report,
            personnel_hours=self.team.personnel,
        )

    def snapshot(self) -> Dict[str, Any]:
        return {
            "form": {
                "name": self.name,
                "location": self.location,
                "fuel_model": self.fuel_model.value if self.fuel_model else None,
                **self.weather.to_wire(),
            },
            "weather_locked": self.weather_locked,
            "team": self.team.model_dump(mode="json", by_alias=True),
            "report": self.report,
            "area": self.area.model_dump(mode="json") if self.area else None,
            "stats": self.area_stats(),
            "notice": self.notice,
        }


def bind_position_events(workspace: BurnWorkspace, signal: ConnectivitySignal, lookups: LookupClient):
    """Feed geolocation events into the workspace; returns the unsubscribe callable."""

    async def _on_signal(message: SignalMessage) -> None:
        if message.event is SignalEvent.POSITION_FAILED:
            workspace.notice = "Impossibile rilevare la posizione."
            logger.warning("position_failed", reason=message.data.get("reason"))
            return
        if message.event is not SignalEvent.POSITION_AVAILABLE:
            return
        lat, lon = message.data["lat"], message.data["lon"]
        workspace.apply_position(lat, lon)
        workspace.notice = None
        if not signal.online:
            return
        try:
            conditions = await lookups.current_weather(lat, lon)
            workspace.apply_conditions(conditions)
        except LookupFailed as e:
            workspace.notice = "Impossibile recuperare i dati meteo."
            logger.warning("position_weather_failed", error=str(e))
        except WeatherLockedError:
            workspace.notice = "Meteo bloccato: esiste già un'analisi per queste condizioni."

    return signal.subscribe(_on_signal)
