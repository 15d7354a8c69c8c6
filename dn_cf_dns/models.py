from typing import FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Host(BaseModel):
    """A Managed Nebula host as returned by the Defined Networking API."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    address: str = Field(alias="ipAddress")
    name: str
    tags: FrozenSet[str] = frozenset()

    @field_validator("tags", mode="before")
    @classmethod
    def _null_tags(cls, value):
        return frozenset() if value is None else value


class HostPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    hosts: List[Host]
    has_next_page: bool
    next_cursor: str = ""


class Policy(BaseModel):
    """Filtering and naming rules for one run."""

    model_config = ConfigDict(frozen=True)

    required_tags: FrozenSet[str] = frozenset()
    required_suffix: str = ""
    trim_suffix: bool = False
    append_suffix: str
    prune: bool = False


class DesiredRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    address: str
    host_id: Optional[str] = None


class ExistingRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: Optional[str] = None
    content: Optional[str] = None
