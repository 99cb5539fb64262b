"""
Kouban Oracle Schemas

Pydantic models for oracle responses. The oracle gives no schema guarantee,
so every field is coerced leniently where the intent is clear (numbers for
labels, a list of props) and rejected where it is not.
"""

from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _coerce_label(value: Any) -> Optional[str]:
    """Episode/scene labels: numbers become strings, blanks become None."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("expected a string or number, got a boolean")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    raise ValueError(f"expected a string or number, got {type(value).__name__}")


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        raise ValueError("expected text, got a boolean")
    if isinstance(value, (str, int, float)):
        return str(value).strip()
    raise ValueError(f"expected text, got {type(value).__name__}")


def _coerce_names(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ValueError(f"expected a list of names, got {type(value).__name__}")
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


class RawScene(BaseModel):
    """One scene record as returned by the oracle."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    episode: Optional[str] = None
    scene_number: Optional[str] = None
    scene: Optional[str] = None  # combined label such as "1-12"
    location: str = ""
    time_of_day: str = Field(
        default="",
        validation_alias=AliasChoices("timeOfDay", "time_of_day", "dn"),
    )
    content: str = ""
    characters: List[str] = Field(default_factory=list)
    props: str = ""
    notes: str = ""

    @field_validator("episode", "scene_number", "scene", mode="before")
    @classmethod
    def _label(cls, value: Any) -> Optional[str]:
        return _coerce_label(value)

    @field_validator("location", "time_of_day", "content", "notes", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _coerce_text(value)

    @field_validator("characters", mode="before")
    @classmethod
    def _names(cls, value: Any) -> List[str]:
        return _coerce_names(value)

    @field_validator("props", mode="before")
    @classmethod
    def _props(cls, value: Any) -> str:
        if isinstance(value, list):
            return ", ".join(_coerce_text(item) for item in value if _coerce_text(item))
        return _coerce_text(value)


class SkeletonEntry(BaseModel):
    """One entry of the prescan scene list."""
    model_config = ConfigDict(extra="ignore")

    episode: Optional[str] = None
    scene_number: Optional[str] = None
    location: str = ""

    @field_validator("episode", "scene_number", mode="before")
    @classmethod
    def _label(cls, value: Any) -> Optional[str]:
        return _coerce_label(value)

    @field_validator("location", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return _coerce_text(value)


class OraclePayload(BaseModel):
    """Top-level oracle response for both prescan and extract modes."""
    model_config = ConfigDict(extra="ignore")

    is_script: bool
    error_message: Optional[str] = None
    characters: List[str] = Field(default_factory=list)
    scenes: List[RawScene] = Field(default_factory=list)
    scene_list: List[SkeletonEntry] = Field(default_factory=list)

    @field_validator("characters", mode="before")
    @classmethod
    def _names(cls, value: Any) -> List[str]:
        return _coerce_names(value)

    @field_validator("scenes", "scene_list", mode="before")
    @classmethod
    def _records(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, dict):
            return [value]
        return value
