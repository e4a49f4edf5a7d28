"""Phase definitions per encounter, loaded from a directory of TOML files.

Each file names one encounter and lists its phases in order::

    name = "The Epic of Alexander"

    [[phase]]
    name = "Living Liquid"
    startMarker = { type = "fightStart" }

    [[phase]]
    name = "Limit Cut"
    startMarker = { type = "event", evType = "Cast", abilityId = 18480 }
    endMarker = { type = "event", evType = "Death", targetId = 12, instanceNo = 1 }
"""

import logging
import tomllib
from pathlib import Path

from pydantic import ConfigDict, Field, ValidationError

from kusanagi.analysis.markers import PhaseMarker
from kusanagi.fflogs.models import FFLogsBaseModel

logger = logging.getLogger(__name__)


class DefinitionsLoadError(Exception):
    """Raised when a definitions file cannot be read or decoded."""


class PhaseDefinition(FFLogsBaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    start_marker: PhaseMarker | None = None
    end_marker: PhaseMarker | None = None


class EncounterDefinitions(FFLogsBaseModel):
    name: str
    phases: tuple[PhaseDefinition, ...] = Field(alias="phase")


class PhaseDefinitionsCollection:
    """Immutable lookup of encounter name -> ordered phase definitions."""

    def __init__(self, encounters: dict[str, tuple[PhaseDefinition, ...]]) -> None:
        self._encounters = dict(encounters)

    def get(self, fight_name: str) -> tuple[PhaseDefinition, ...] | None:
        return self._encounters.get(fight_name)

    def __contains__(self, fight_name: str) -> bool:
        return fight_name in self._encounters

    def __len__(self) -> int:
        return len(self._encounters)

    @property
    def encounter_names(self) -> list[str]:
        return sorted(self._encounters)


def load_definitions_file(path: Path) -> EncounterDefinitions:
    try:
        with path.open("rb") as f:
            raw = tomllib.load(f)
    except OSError as exc:
        raise DefinitionsLoadError(f"Could not read {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise DefinitionsLoadError(f"Could not parse {path}: {exc}") from exc

    try:
        return EncounterDefinitions.model_validate(raw)
    except ValidationError as exc:
        raise DefinitionsLoadError(f"Invalid phase definitions in {path}: {exc}") from exc


def load_definitions_dir(directory: Path | str) -> PhaseDefinitionsCollection:
    """Load every ``*.toml`` file directly inside ``directory``.

    Subdirectories and other files are ignored. A later file with the same
    encounter name replaces an earlier one (files are read in name order).
    """
    directory = Path(directory)
    encounters: dict[str, tuple[PhaseDefinition, ...]] = {}
    try:
        paths = sorted(p for p in directory.iterdir() if p.is_file() and p.suffix == ".toml")
    except OSError as exc:
        logger.error("Could not list phase definitions in %s: %s", directory, exc)
        raise DefinitionsLoadError(f"Could not list {directory}: {exc}") from exc

    for path in paths:
        try:
            definitions = load_definitions_file(path)
        except DefinitionsLoadError:
            logger.exception("An error occurred whilst decoding phase definitions")
            raise
        if definitions.name in encounters:
            logger.warning(
                "Phase definitions for %s in %s replace an earlier file",
                definitions.name, path.name,
            )
        encounters[definitions.name] = definitions.phases

    logger.info(
        "Loaded phase definitions for %d encounters from %s",
        len(encounters), directory,
    )
    return PhaseDefinitionsCollection(encounters)
