"""
lectern/api/schemas.py
=======================
Request bodies accepted by the HTTP API.

Field names follow the capture client's camelCase JSON.
"""

from pydantic import BaseModel, ConfigDict, Field


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CreateSessionRequest(_Body):
    title: str = Field(min_length=1)
    host_id: str = Field(alias="hostId", min_length=1)
    host_name: str = Field(alias="hostName", min_length=1)
    category: str | None = None
    primary_language: str | None = Field(default=None, alias="primaryLanguage")


class SegmentRequest(_Body):
    text: str | None = None
    is_final: bool = Field(default=False, alias="isFinal")


class SummaryRequest(_Body):
    force: bool = False


class TranslateRequest(_Body):
    text: str | None = None
    target_language: str | None = Field(default=None, alias="targetLanguage")
    source_language: str | None = Field(default=None, alias="sourceLanguage")


class EndSessionRequest(_Body):
    host_id: str | None = Field(default=None, alias="hostId")
