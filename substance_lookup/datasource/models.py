"""
Normalized substance records and the parsers that build them from upstream JSON.

Upstream payloads are loosely shaped: any field may be missing or null, so
every model field carries an explicit default and nulls are dropped before
validation.
"""

from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from substance_lookup.services.errors import SubstanceParseError
from substance_lookup.services.normalizer import normalize_name

PSYCHONAUT_SOURCE = "PsychonautWiki"
TRIPSIT_SOURCE = "TripSit"


class LenientModel(BaseModel):
    """Base model that treats null as "use the default"."""

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


def _as_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item]
    return []


class Interaction(LenientModel):
    name: str = ""
    note: str | None = None


class Interactions(LenientModel):
    """Interaction breakdown by risk level."""

    dangerous: list[Interaction] = Field(default_factory=list)
    unsafe: list[Interaction] = Field(default_factory=list)
    uncertain: list[Interaction] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.dangerous or self.unsafe or self.uncertain)


class SubstanceRecord(LenientModel):
    """Fields shared by every source's record."""

    name: str
    interactions: Interactions = Field(default_factory=Interactions)
    source: str

    @property
    def normalized_name(self) -> str:
        return normalize_name(self.name)

    @property
    def alternate_names(self) -> list[str]:
        return []

    def matches(self, normalized: str) -> bool:
        """Check if a normalized name refers to this substance."""
        if not normalized:
            return False
        if normalized == self.normalized_name:
            return True
        return any(normalize_name(alt) == normalized for alt in self.alternate_names)

    def to_display_dict(self) -> dict[str, Any]:
        """Serialize with upstream field names, as the tooltip layer expects."""
        return self.model_dump(by_alias=True)


# PsychonautWiki


class SubstanceClass(LenientModel):
    chemical: list[str] = Field(default_factory=list)
    psychoactive: list[str] = Field(default_factory=list)


class Tolerance(LenientModel):
    full: str | None = None
    half: str | None = None
    zero: str | None = None


class DoseRange(LenientModel):
    min: float | None = None
    max: float | None = None


class Dose(LenientModel):
    units: str | None = None
    threshold: float | None = None
    light: DoseRange | None = None
    common: DoseRange | None = None
    strong: DoseRange | None = None
    heavy: float | None = None


class DurationRange(LenientModel):
    min: float | None = None
    max: float | None = None
    units: str | None = None


class Duration(LenientModel):
    onset: DurationRange | None = None
    comeup: DurationRange | None = None
    peak: DurationRange | None = None
    offset: DurationRange | None = None
    total: DurationRange | None = None
    afterglow: DurationRange | None = None


class RouteOfAdministration(LenientModel):
    name: str = ""
    dose: Dose = Field(default_factory=Dose)
    duration: Duration = Field(default_factory=Duration)


class PsychonautRecord(SubstanceRecord):
    common_names: list[str] = Field(default_factory=list, alias="commonNames")
    substance_class: SubstanceClass = Field(
        default_factory=SubstanceClass, alias="class"
    )
    tolerance: Tolerance = Field(default_factory=Tolerance)
    roas: list[RouteOfAdministration] = Field(default_factory=list)
    source: Literal["PsychonautWiki"] = PSYCHONAUT_SOURCE

    @property
    def alternate_names(self) -> list[str]:
        return self.common_names


def parse_psychonaut_substance(raw: Any) -> PsychonautRecord:
    """
    Map one item of a PsychonautWiki ``substances`` response.

    Raises:
        SubstanceParseError: If the item is not an object or has no name
    """
    if not isinstance(raw, dict) or not raw.get("name"):
        raise SubstanceParseError(
            f"Substance without a name: {str(raw)[:100]}",
            service_id="psychonaut",
        )

    try:
        return PsychonautRecord.model_validate(
            {
                "name": raw["name"],
                "commonNames": raw.get("commonNames"),
                "class": raw.get("class"),
                "tolerance": raw.get("tolerance"),
                "roas": raw.get("roas"),
                "interactions": {
                    "dangerous": raw.get("dangerousInteractions"),
                    "unsafe": raw.get("unsafeInteractions"),
                    "uncertain": raw.get("uncertainInteractions"),
                },
            }
        )
    except ValidationError as e:
        raise SubstanceParseError(
            f"Invalid substance '{raw['name']}': {e}", service_id="psychonaut"
        ) from e


# TripSit

# combos status -> interaction bucket; low-risk statuses are not listed
COMBO_STATUS_BUCKETS = {
    "dangerous": "dangerous",
    "unsafe": "unsafe",
    "caution": "uncertain",
}


class TripSitProperties(LenientModel):
    dosage: dict[str, Any] | str = Field(default_factory=dict)
    duration: dict[str, Any] | str = Field(default_factory=dict)
    effects: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    summary: str | None = None

    @field_validator("effects", "warnings", "categories", mode="before")
    @classmethod
    def _split_text(cls, value: Any) -> list[str]:
        return _as_list(value)


class TripSitRecord(SubstanceRecord):
    pretty_name: str | None = None
    aliases: list[str] = Field(default_factory=list)
    properties: TripSitProperties = Field(default_factory=TripSitProperties)
    source: Literal["TripSit"] = TRIPSIT_SOURCE

    @property
    def alternate_names(self) -> list[str]:
        return self.aliases


def interactions_from_combos(combos: Any) -> dict[str, list[dict[str, Any]]]:
    """Bucket a TripSit ``combos`` table by risk level."""
    buckets: dict[str, list[dict[str, Any]]] = {
        "dangerous": [],
        "unsafe": [],
        "uncertain": [],
    }
    if not isinstance(combos, dict):
        return buckets

    for other, combo in combos.items():
        if not isinstance(combo, dict):
            continue
        bucket = COMBO_STATUS_BUCKETS.get(str(combo.get("status", "")).lower())
        if bucket:
            buckets[bucket].append({"name": other, "note": combo.get("note")})
    return buckets


def parse_tripsit_drug(raw: Any) -> TripSitRecord:
    """
    Map a TripSit ``getDrug`` payload.

    Raises:
        SubstanceParseError: If the payload is not an object or has no name
    """
    if not isinstance(raw, dict) or not raw.get("name"):
        raise SubstanceParseError(
            f"Drug without a name: {str(raw)[:100]}", service_id="tripsit"
        )

    props = raw.get("properties") if isinstance(raw.get("properties"), dict) else {}
    interactions = raw.get("interactions")
    if not isinstance(interactions, dict):
        interactions = interactions_from_combos(raw.get("combos"))

    try:
        return TripSitRecord.model_validate(
            {
                "name": raw["name"],
                "pretty_name": raw.get("pretty_name"),
                "aliases": _as_list(raw.get("aliases")),
                "properties": {
                    "dosage": props.get("dosage")
                    or props.get("dose")
                    or raw.get("formatted_dose"),
                    "duration": props.get("duration") or raw.get("formatted_duration"),
                    "effects": props.get("effects") or raw.get("formatted_effects"),
                    "warnings": props.get("warnings"),
                    "categories": props.get("categories"),
                    "summary": props.get("summary"),
                },
                "interactions": interactions,
            }
        )
    except ValidationError as e:
        raise SubstanceParseError(
            f"Invalid drug '{raw['name']}': {e}", service_id="tripsit"
        ) from e
