import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_OPERATION_NAME = "Operazione Senza Nome"


class FuelModel(str, Enum):
    BOSCO = "Bosco"
    MACCHIA_ALTA = "Macchia Alta"
    MACCHIA_BASSA = "Macchia bassa"
    SOTTOBOSCO = "Sottobosco"
    PASCOLO = "Pascolo"
    PASCOLO_ALBERATO = "Pascolo Alberato"
    PASCOLO_CESPUGLIATO = "Pascolo cespugliato"
    LETTIERA = "Lettiera"
    PINETA = "Pineta"


class PersonnelRole(str, Enum):
    OPERATORE_GAUF = "Operatore Gauf"
    TORCISTA = "Torcista"
    ADDETTO_POMPE = "Addetto Pompe"
    AUTISTA = "Autista"
    SUPERVISORE = "Supervisore"
    DIRETTORE_OPERAZIONI = "Direttore Operazioni"


class BurnStatus(str, Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    COMPLETED = "completed"


def _parse_number(v: Any) -> Optional[float]:
    """Form values arrive as strings ("", "12", "12,5"); blank means unknown."""
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        return float(v)
    text = str(v).strip().replace(",", ".")
    if not text:
        return None
    return float(text)


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class WeatherSnapshot(BaseModel):
    """Conditions the analysis was run against. Wire keys are the short form names."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    temperature: Optional[float] = Field(default=None, alias="temp")
    humidity: Optional[float] = None
    wind_speed: Optional[float] = Field(default=None, alias="wind")
    slope_percent: Optional[float] = Field(default=None, alias="slope")
    fuel_moisture: Optional[float] = None
    aspect: Optional[str] = None

    @field_validator("temperature", "humidity", "wind_speed", "slope_percent", "fuel_moisture", mode="before")
    @classmethod
    def _numeric(cls, v):
        return _parse_number(v)

    @field_validator("aspect", mode="before")
    @classmethod
    def _aspect(cls, v):
        v = _blank_to_none(v)
        return str(v).strip() if v is not None else None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class Participant(BaseModel):
    """Name/role copied at save time; not a live reference to the roster."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    role: str


class PersonnelHours(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    per_person_hours: Dict[str, float] = Field(default_factory=dict, alias="details")
    total_hours: float = Field(default=0.0, alias="total")
    active_count: int = Field(default=0, alias="activeCount")
    participants: List[Participant] = Field(default_factory=list)

    @field_validator("per_person_hours", mode="before")
    @classmethod
    def _hours(cls, v):
        if not v:
            return {}
        out = {}
        for key, raw in dict(v).items():
            try:
                out[str(key)] = _parse_number(raw) or 0.0
            except ValueError:
                out[str(key)] = 0.0
        return out

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class OperationRecord(BaseModel):
    """A prescribed-burn operation as held by the core.

    ``id`` and ``created_at`` are fixed at creation; changes go through
    ``model_copy`` which keeps them.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = DEFAULT_OPERATION_NAME
    location_label: Optional[str] = None
    fuel_model: Optional[FuelModel] = None
    weather: WeatherSnapshot = Field(default_factory=WeatherSnapshot)
    area_geojson: Optional[Dict[str, Any]] = None
    ai_report: Optional[str] = None
    personnel_hours: PersonnelHours = Field(default_factory=PersonnelHours)
    status: BurnStatus = BurnStatus.PLANNING
    created_at: datetime
    synced: bool = False
    owner_id: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _default_name(cls, v):
        if v is None or not str(v).strip():
            return DEFAULT_OPERATION_NAME
        return str(v).strip()

    @field_validator("fuel_model", "location_label", mode="before")
    @classmethod
    def _blank(cls, v):
        return _blank_to_none(v)

    @field_validator("created_at")
    @classmethod
    def _aware(cls, v: datetime) -> datetime:
        # Stored as UTC wall time: SQLite drops the offset and hands back naive values
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @classmethod
    def new(cls, **fields) -> "OperationRecord":
        fields.setdefault("id", str(uuid.uuid4()))
        fields.setdefault("created_at", datetime.now(timezone.utc))
        fields["synced"] = False
        return cls(**fields)

    def to_remote_row(self, owner_id: str) -> Dict[str, Any]:
        """Row for the remote ``burns`` table (wire column names)."""
        return {
            "id": self.id,
            "user_id": owner_id,
            "name": self.name,
            "status": self.status.value,
            "location_name": self.location_label,
            "fuel_model": self.fuel_model.value if self.fuel_model else None,
            "weather_data": self.weather.to_wire(),
            "area_geojson": self.area_geojson,
            "ai_report": self.ai_report,
            "personnel_hours": self.personnel_hours.to_wire(),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_remote_row(cls, row: Dict[str, Any]) -> "OperationRecord":
        return cls(
            id=str(row["id"]),
            name=row.get("name"),
            location_label=row.get("location_name"),
            fuel_model=row.get("fuel_model"),
            weather=WeatherSnapshot.model_validate(row.get("weather_data") or {}),
            area_geojson=row.get("area_geojson"),
            ai_report=row.get("ai_report"),
            personnel_hours=PersonnelHours.model_validate(row.get("personnel_hours") or {}),
            status=row.get("status") or BurnStatus.PLANNING,
            created_at=row["created_at"],
            synced=True,
            owner_id=row.get("user_id"),
        )

    def to_local_columns(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "location_name": self.location_label,
            "fuel_model": self.fuel_model.value if self.fuel_model else None,
            "weather_data": self.weather.to_wire(),
            "area_geojson": self.area_geojson,
            "ai_report": self.ai_report,
            "personnel_hours": self.personnel_hours.to_wire(),
            "status": self.status.value,
            "created_at": self.created_at,
            "synced": self.synced,
            "user_id": self.owner_id,
        }

    @classmethod
    def from_local(cls, row) -> "OperationRecord":
        return cls(
            id=row.id,
            name=row.name,
            location_label=row.location_name,
            fuel_model=row.fuel_model,
            weather=WeatherSnapshot.model_validate(row.weather_data or {}),
            area_geojson=row.area_geojson,
            ai_report=row.ai_report,
            personnel_hours=PersonnelHours.model_validate(row.personnel_hours or {}),
            status=row.status or BurnStatus.PLANNING,
            created_at=row.created_at,
            synced=bool(row.synced),
            owner_id=row.user_id,
        )


class PersonRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    role: PersonnelRole

    @classmethod
    def new(cls, name: str, role: PersonnelRole = PersonnelRole.OPERATORE_GAUF) -> "PersonRecord":
        return cls(id=str(uuid.uuid4()), name=name, role=role)


# Request / response bodies

class BurnCreate(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    location: Optional[str] = None
    fuel_model: Optional[FuelModel] = None
    weather: WeatherSnapshot = Field(default_factory=WeatherSnapshot)
    area_geojson: Optional[Dict[str, Any]] = None
    ai_report: Optional[str] = None
    personnel_hours: PersonnelHours = Field(default_factory=PersonnelHours)

    @field_validator("fuel_model", mode="before")
    @classmethod
    def _blank(cls, v):
        return _blank_to_none(v)

    @field_validator("id")
    @classmethod
    def _uuid(cls, v):
        if v is None:
            return v
        return str(uuid.UUID(v))

    def to_record(self) -> OperationRecord:
        fields = dict(
            name=self.name,
            location_label=self.location,
            fuel_model=self.fuel_model,
            weather=self.weather,
            area_geojson=self.area_geojson,
            ai_report=self.ai_report,
            personnel_hours=self.personnel_hours,
        )
        if self.id:
            fields["id"] = self.id
        return OperationRecord.new(**fields)


class BurnResponse(BaseModel):
    id: str
    name: str
    location_name: Optional[str] = None
    fuel_model: Optional[str] = None
    weather_data: Dict[str, Any] = Field(default_factory=dict)
    area_geojson: Optional[Dict[str, Any]] = None
    ai_report: Optional[str] = None
    personnel_hours: Dict[str, Any] = Field(default_factory=dict)
    status: str
    created_at: datetime
    synced: bool
    user_id: Optional[str] = None

    @classmethod
    def from_record(cls, r: OperationRecord) -> "BurnResponse":
        return cls(
            id=r.id,
            name=r.name,
            location_name=r.location_label,
            fuel_model=r.fuel_model.value if r.fuel_model else None,
            weather_data=r.weather.to_wire(),
            area_geojson=r.area_geojson,
            ai_report=r.ai_report,
            personnel_hours=r.personnel_hours.to_wire(),
            status=r.status.value,
            created_at=r.created_at,
            synced=r.synced,
            user_id=r.owner_id,
        )


class SaveResponse(BaseModel):
    id: str
    destination: str  # remote|local
    synced: bool
    states: List[str]
    reason: Optional[str] = None
    message: str


class SweepResponse(BaseModel):
    attempted: int
    synced: List[str]
    failed: List[str]
    skipped: List[str]
    aborted: Optional[str] = None


class RegistryResponse(BaseModel):
    burns: List[BurnResponse]
    remote_available: bool


class PersonCreate(BaseModel):
    name: str = Field(min_length=1)
    role: PersonnelRole = PersonnelRole.OPERATORE_GAUF

    @field_validator("name")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class PersonResponse(BaseModel):
    id: str
    name: str
    role: str

    class Config:
        from_attributes = True
