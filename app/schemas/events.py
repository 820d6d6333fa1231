from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, constr, field_validator


class UserDataIn(BaseModel):
    """Идентификаторы пользователя, присланные клиентом; значения не типизируются и уходят как есть."""

    external_id: Optional[Any] = None
    fbp: Optional[Any] = None
    fbc: Optional[Any] = None
    country: Optional[Any] = None

    model_config = ConfigDict(extra="ignore")


class EventIn(BaseModel):
    event_id: constr(strict=True, min_length=1)  # type: ignore[valid-type]
    event_name: Optional[Any] = None
    event_time: Optional[Any] = None
    event_source_url: Optional[Any] = None
    action_source: Optional[Any] = None
    custom_data: Optional[Any] = None
    user_data: Optional[UserDataIn] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("event_time", mode="before")
    @classmethod
    def truncate_fractional_time(cls, value: Any) -> Any:
        # Date.now() / 1000 без округления
        if isinstance(value, float):
            return int(value)
        return value

    @field_validator("user_data", mode="before")
    @classmethod
    def ignore_non_mapping_user_data(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None


class EventBatch(BaseModel):
    data: List[EventIn] = Field(min_length=1)


class UserDataOut(BaseModel):
    client_ip_address: str
    client_user_agent: str
    external_id: Optional[Any] = None
    fbp: Optional[Any] = None
    fbc: Optional[str] = None
    country: Optional[Any] = None


class ConversionEvent(BaseModel):
    """Событие в том виде, в котором оно уходит в Conversions API."""

    event_name: Any
    event_id: str
    event_time: Any
    event_source_url: Any
    action_source: Any
    custom_data: Any = Field(default_factory=dict)
    user_data: UserDataOut

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class DeduplicationSummary(BaseModel):
    original: int
    processed: int
    blocked: int


class IpInfo(BaseModel):
    ip: str
    type: str


class AllDuplicatesResponse(BaseModel):
    message: str = "All events are duplicates"
    blocked: int
    cache: int
