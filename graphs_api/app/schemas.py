from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .constants import DEFAULT_DAYS, MAX_DAYS, DeltaMode, TechnicalType
from .errors import InvalidArgument


ColumnType = Literal["date", "string", "number", "percent"]


class TechnicalSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: TechnicalType
    period: int


class GraphRequest(BaseModel):
    """A single graph request; the only input to cache key derivation."""

    model_config = ConfigDict(frozen=True)

    graph_type: str
    days: int = DEFAULT_DAYS
    delta: DeltaMode = DeltaMode.NONE
    arg0: Optional[str] = None
    arg0_resolved: Optional[str] = None
    user_id: Optional[int] = None
    user_hash: Optional[str] = None
    technical: Optional[TechnicalSpec] = None
    no_cache: bool = False

    @field_validator("days", mode="before")
    @classmethod
    def _coerce_days(cls, value: Any) -> Any:
        if value is None or value == "":
            return DEFAULT_DAYS
        if isinstance(value, str) and value.lower() == "max":
            return MAX_DAYS
        return value

    @field_validator("delta", mode="before")
    @classmethod
    def _coerce_delta(cls, value: Any) -> Any:
        if value is None or value == "":
            return DeltaMode.NONE
        return value

    @classmethod
    def from_query(
        cls,
        graph_type: str,
        *,
        days: Optional[str] = None,
        delta: Optional[str] = None,
        arg0: Optional[str] = None,
        arg0_resolved: Optional[str] = None,
        user_id: Optional[int] = None,
        user_hash: Optional[str] = None,
        technical_type: Optional[str] = None,
        technical_period: Optional[str] = None,
        no_cache: bool = False,
    ) -> "GraphRequest":
        """Build a request from raw query values, raising InvalidArgument on bad input."""

        try:
            technical = None
            if technical_type:
                technical = TechnicalSpec(type=technical_type, period=technical_period)
            return cls(
                graph_type=graph_type,
                days=days,
                delta=delta,
                arg0=arg0 or None,
                arg0_resolved=arg0_resolved or None,
                user_id=user_id,
                user_hash=user_hash or None,
                technical=technical,
                no_cache=no_cache,
            )
        except ValidationError as exc:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
            raise InvalidArgument(f"Invalid graph request parameters: {fields}") from exc


class Column(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    title: str
    type: ColumnType = "number"
    technical: bool = False

    @property
    def is_numeric(self) -> bool:
        return self.type in ("number", "percent")


class Heading(BaseModel):
    label: str
    args: Dict[str, str] = Field(default_factory=dict)
    url: Optional[str] = None
    title: str = ""


class ExtraLink(BaseModel):
    classes: str
    href: str
    label: str
    args: Dict[str, str] = Field(default_factory=dict)


class GraphResult(BaseModel):
    """Response envelope for /api/v1/graphs.

    Serialized with ``by_alias=True, exclude_none=True``; the aliased names are
    part of the public contract consumed by the chart front end.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    type: str
    columns: List[Column] = Field(default_factory=list)
    key: str = ""
    data: List[List[Any]] = Field(default_factory=list)
    text: Optional[str] = None
    args: Optional[Dict[str, str]] = None
    heading: Heading
    h1: Optional[str] = None
    h2: Optional[str] = None
    no_header: Optional[bool] = Field(default=None, alias="noHeader")
    subheading: Optional[str] = None
    last_updated: str = Field(alias="lastUpdated")
    timestamp: str
    classes: str = ""
    graph_type: str
    extra: Optional[ExtraLink] = None
    outofdate: Optional[bool] = None
    time: float = 0.0
    debug: Optional[Dict[str, Any]] = Field(default=None, alias="_debug")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)
