"""Report event types returned by the FFLogs events endpoint, plus request filters."""

import logging
from enum import IntEnum, StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import Field, TypeAdapter, ValidationError, field_validator

from kusanagi.fflogs.models import Ability, ActorData, FFLogsBaseModel, Resources

logger = logging.getLogger(__name__)


class EventsView(StrEnum):
    """Event views exposed by the API; the view decides which event types come back."""

    SUMMARY = "summary"
    DAMAGE_DONE = "damage-done"
    DAMAGE_TAKEN = "damage-taken"
    HEALING = "healing"
    CASTS = "casts"
    SUMMONS = "summons"
    BUFFS = "buffs"
    DEBUFFS = "debuffs"
    DEATHS = "deaths"
    THREAT = "threat"
    RESOURCES = "resources"
    INTERRUPTS = "interrupts"
    DISPELS = "dispels"


class Hostility(IntEnum):
    FRIENDLY = 0
    HOSTILE = 1


# Query parameter spelling used by the v1 API, keyed by field name
_QUERY_PARAM_NAMES = {
    "source_id": "sourceid",
    "source_instance": "sourceinstance",
    "source_class": "sourceclass",
    "target_id": "targetid",
    "target_instance": "targetinstance",
    "target_class": "targetclass",
    "ability_id": "abilityid",
}


class EventFilters(FFLogsBaseModel):
    """Time window [start, end) in ms plus optional server-side filters."""

    start: int = 0
    end: int = 0
    hostility: Hostility | None = None
    source_id: int | None = None
    source_instance: int | None = None
    source_class: str | None = None
    target_id: int | None = None
    target_instance: int | None = None
    target_class: str | None = None
    ability_id: int | None = None
    death: int | None = None
    options: int | None = None
    cutoff: int | None = None
    encounter: int | None = None
    wipes: int | None = None
    difficulty: int | None = None
    filter: str | None = None
    translate: bool | None = None

    def with_window(self, start: int, end: int) -> "EventFilters":
        return self.model_copy(update={"start": start, "end": end})

    def to_query_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        for field_name, value in self.model_dump(exclude_none=True).items():
            if isinstance(value, bool):
                value = "true" if value else "false"
            elif isinstance(value, IntEnum):
                value = int(value)
            params[_QUERY_PARAM_NAMES.get(field_name, field_name)] = value
        return params


class BaseEvent(FFLogsBaseModel):
    def get_timestamp(self) -> int | None:
        return None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class UnrecognizedEvent(BaseEvent):
    """An event whose type or payload could not be decoded; kept so a page never fails."""

    type: str | None = None
    data: dict[str, Any] = {}

    def to_wire(self) -> dict[str, Any]:
        return dict(self.data)


class TimedEvent(BaseEvent):
    timestamp: int

    def get_timestamp(self) -> int | None:
        return self.timestamp


class ActorEvent(TimedEvent):
    source_id: int | None = Field(None, alias="sourceID")
    source: ActorData | None = None
    source_is_friendly: bool | None = None
    source_resources: Resources | None = None
    target_id: int | None = Field(None, alias="targetID")
    target: ActorData | None = None
    target_is_friendly: bool | None = None
    target_resources: Resources | None = None

    def get_source_id(self) -> int | None:
        if self.source_id is not None:
            return self.source_id
        return self.source.guid if self.source else None

    def get_target_id(self) -> int | None:
        if self.target_id is not None:
            return self.target_id
        return self.target.guid if self.target else None


class AbilityEvent(ActorEvent):
    ability: Ability
    debug_multiplier: float | None = None
    packet_id: int | None = Field(None, alias="packetID")


class _DamagePayload(AbilityEvent):
    hit_type: int | None = None
    amount: int | None = None
    absorbed: int | None = None
    multistrike: bool | None = None


class CalculatedDamage(_DamagePayload):
    """Damage snapshotted and calculated but not yet applied."""

    type: Literal["calculateddamage"] = "calculateddamage"


class Damage(_DamagePayload):
    type: Literal["damage"] = "damage"


class CalculatedHeal(AbilityEvent):
    type: Literal["calculatedheal"] = "calculatedheal"
    hit_type: int | None = None
    amount: int | None = None


class Heal(AbilityEvent):
    type: Literal["heal"] = "heal"
    hit_type: int | None = None
    amount: int | None = None
    overheal: int | None = None


class BeginCast(AbilityEvent):
    type: Literal["begincast"] = "begincast"


class Cast(AbilityEvent):
    """A completed cast."""

    type: Literal["cast"] = "cast"


class ApplyBuff(AbilityEvent):
    type: Literal["applybuff"] = "applybuff"


class RefreshBuff(AbilityEvent):
    type: Literal["refreshbuff"] = "refreshbuff"


class ApplyBuffStack(AbilityEvent):
    type: Literal["applybuffstack"] = "applybuffstack"
    stack: int


class RemoveBuff(AbilityEvent):
    type: Literal["removebuff"] = "removebuff"


class RemoveBuffStack(AbilityEvent):
    type: Literal["removebuffstack"] = "removebuffstack"
    stack: int


class ApplyDebuff(AbilityEvent):
    type: Literal["applydebuff"] = "applydebuff"


class RefreshDebuff(AbilityEvent):
    type: Literal["refreshdebuff"] = "refreshdebuff"


class ApplyDebuffStack(AbilityEvent):
    type: Literal["applydebuffstack"] = "applydebuffstack"
    stack: int


class RemoveDebuff(AbilityEvent):
    type: Literal["removedebuff"] = "removedebuff"


class RemoveDebuffStack(AbilityEvent):
    type: Literal["removedebuffstack"] = "removedebuffstack"
    stack: int


class Death(ActorEvent):
    type: Literal["death"] = "death"
    ability: Ability | None = None
    killer_id: int | None = Field(None, alias="killerID")
    killing_ability: Ability | None = None


class LimitBreakUpdate(TimedEvent):
    """The party's limit break gauge changed."""

    type: Literal["limitbreakupdate"] = "limitbreakupdate"
    value: int
    bars: int


ReportEvent = Annotated[
    Union[
        CalculatedDamage,
        Damage,
        CalculatedHeal,
        Heal,
        BeginCast,
        Cast,
        ApplyBuff,
        RefreshBuff,
        ApplyBuffStack,
        RemoveBuff,
        RemoveBuffStack,
        ApplyDebuff,
        RefreshDebuff,
        ApplyDebuffStack,
        RemoveDebuff,
        RemoveDebuffStack,
        Death,
        LimitBreakUpdate,
    ],
    Field(discriminator="type"),
]

_EVENT_ADAPTER: TypeAdapter[ReportEvent] = TypeAdapter(ReportEvent)


def parse_event(raw: Any) -> BaseEvent:
    """Decode one raw event dict, degrading to UnrecognizedEvent instead of raising."""
    try:
        return _EVENT_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        data = raw if isinstance(raw, dict) else {}
        event_type = data.get("type")
        logger.warning(
            "Skipping unrecognized event (type=%r, timestamp=%r): %d validation errors",
            event_type, data.get("timestamp"), exc.error_count(),
        )
        return UnrecognizedEvent(
            type=str(event_type) if event_type is not None else None, data=data,
        )


class EventPage(FFLogsBaseModel):
    events: list[BaseEvent] = []
    next_page_timestamp: int | None = None

    @field_validator("events", mode="before")
    @classmethod
    def _decode_events(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [e if isinstance(e, BaseEvent) else parse_event(e) for e in value]
