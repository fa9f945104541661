"""Request and response types for the inspector bridge."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, Field, field_validator, model_validator

MAX_DEPTH_LIMIT = 64
MAX_NODES_LIMIT = 10_000
MAX_CLASSES = 500


@dataclass(frozen=True)
class EvalResponse:
    """Outcome of one evaluation, written at most once into a correlator."""

    success: bool
    result: str | None = None
    error: str | None = None

    @classmethod
    def ok(cls, result: str) -> EvalResponse:
        return cls(success=True, result=result)

    @classmethod
    def failure(cls, error: str) -> EvalResponse:
        return cls(success=False, error=error)


def _non_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


NonBlank = Annotated[str, Field(min_length=1), AfterValidator(_non_blank)]


class EvalRequest(BaseModel):
    script: NonBlank


class QueryRequest(BaseModel):
    selector: NonBlank
    mode: Literal["text", "html", "outer_html", "value", "attr"] = "text"
    attr: Optional[str] = None
    all: bool = False

    @model_validator(mode="after")
    def _attr_matches_mode(self) -> QueryRequest:
        if self.mode == "attr" and not (self.attr and self.attr.strip()):
            raise ValueError("attr is required when mode is 'attr'")
        if self.mode != "attr" and self.attr is not None:
            raise ValueError("attr is only allowed when mode is 'attr'")
        return self


class DomParams(BaseModel):
    selector: Optional[NonBlank] = None
    max_depth: Optional[int] = Field(default=None, ge=1, le=MAX_DEPTH_LIMIT)
    max_nodes: Optional[int] = Field(default=None, ge=1, le=MAX_NODES_LIMIT)


class InspectRequest(BaseModel):
    selector: NonBlank


class ValidateClassesRequest(BaseModel):
    classes: list[str] = Field(min_length=1, max_length=MAX_CLASSES)

    @field_validator("classes")
    @classmethod
    def _names_not_blank(cls, value: list[str]) -> list[str]:
        for name in value:
            if not name.strip() or any(c.isspace() for c in name):
                raise ValueError(f"invalid class name {name!r}")
        return value


class Region(BaseModel):
    x: int = Field(ge=0)
    y: int = Field(ge=0)
    width: int = Field(gt=0)
    height: int = Field(gt=0)


class ScreenshotRequest(BaseModel):
    region: Optional[Region] = None
    path: Optional[str] = None


class StatusResponse(BaseModel):
    status: str = "ok"
    app_name: str
    pid: int
    uptime_seconds: int
    uptime_human: str
