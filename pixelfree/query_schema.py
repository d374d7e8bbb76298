from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _coerce_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise ValueError("must be a list of strings")

    out: list[str] = []
    for item in value:
        if item is None or isinstance(item, bool):
            continue
        if not isinstance(item, (str, int)):
            raise ValueError("must be a list of strings")
        s = str(item).strip()
        if s:
            out.append(s)
    return out


class UsersPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    accts: list[str] = Field(default_factory=list)
    account_ids: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("accountIds", "account_ids"),
    )

    @field_validator("accts", "account_ids", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> list[str]:
        return _coerce_str_list(v)


class QueryPayload(BaseModel):
    """
    Wire shape of a photo query as received from the route layer.

    Limits are clamped later rather than rejected here, so any value is accepted.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    type: str = ""
    limit: Any = None
    tags: list[str] = Field(default_factory=list)
    accts: list[str] = Field(default_factory=list)
    account_ids: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("accountIds", "account_ids"),
    )
    users: UsersPayload | None = None
    tag_mode: str = Field("any", validation_alias=AliasChoices("tagMode", "tag_mode"))
    local_only: bool = Field(False, validation_alias=AliasChoices("localOnly", "local_only"))

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, v: Any) -> str:
        return str(v or "").strip().casefold()

    @field_validator("tags", "accts", "account_ids", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> list[str]:
        return _coerce_str_list(v)

    @field_validator("tag_mode", mode="before")
    @classmethod
    def _normalize_tag_mode(cls, v: Any) -> str:
        return str(v or "any").strip().casefold() or "any"

    def all_accts(self) -> list[str]:
        nested = list(self.users.accts) if self.users else []
        return list(self.accts) + nested

    def all_account_ids(self) -> list[str]:
        nested = list(self.users.account_ids) if self.users else []
        return list(self.account_ids) + nested
