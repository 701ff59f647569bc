"""Pydantic models for content store responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateResponse(_CamelModel):
    id: str
    kind: str


class TextView(_CamelModel):
    kind: str = "text"
    content: str
    expires_at: datetime


class FileView(_CamelModel):
    kind: str
    file_url: str
    file_name: str
    mime_type: str
    expires_at: datetime
