from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FFLogsBaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ActorData(FFLogsBaseModel):
    """An in-game character or NPC embedded in an event."""

    name: str
    id: int
    guid: int
    actor_type: str = Field(alias="type")
    icon: str | None = None


class Ability(FFLogsBaseModel):
    """An ability used in an event; can also represent a buff."""

    name: str
    guid: int
    ability_type: int = Field(alias="type")
    ability_icon: str | None = None


class Resources(FFLogsBaseModel):
    hit_points: int | None = None
    max_hit_points: int | None = None
    mp: int | None = None
    max_mp: int | None = Field(None, alias="maxMP")
    tp: int | None = None
    max_tp: int | None = Field(None, alias="maxTP")
    x: int | None = None
    y: int | None = None
    facing: int | None = None
    absorb: int | None = None


class FightLink(FFLogsBaseModel):
    id: int


class Unit(FFLogsBaseModel):
    name: str
    id: int | None = None
    guid: int | None = None
    type: str | None = None
    server: str | None = None
    icon: str | None = None
    pet_owner: int | None = None
    fights: list[FightLink] = []


class Instance(FFLogsBaseModel):
    boss: int | None = None
    phases: list[str] | None = None


class Fight(FFLogsBaseModel):
    """One pull in a report. Times are ms relative to the report start."""

    id: int
    start_time: int = Field(alias="start_time")
    end_time: int = Field(alias="end_time")
    boss: int | None = None
    name: str | None = None
    zone_id: int | None = Field(None, alias="zoneID")
    zone_name: str | None = None
    size: int | None = None
    difficulty: int | None = None
    kill: bool | None = None
    partial: int | None = None
    standard_composition: bool | None = None
    boss_percentage: int | None = None
    fight_percentage: int | None = None
    last_phase_for_percentage_display: int | None = None


class ReportFights(FFLogsBaseModel):
    """Response of the report fights endpoint. start/end are epoch ms."""

    fights: list[Fight] = []
    lang: str | None = None
    friendlies: list[Unit] = []
    enemies: list[Unit] = []
    friendly_pets: list[Unit] = []
    enemy_pets: list[Unit] = []
    phases: list[Instance] = []
    log_version: int | None = None
    title: str | None = None
    owner: str | None = None
    start: int | None = None
    end: int | None = None
    zone: int | None = None
