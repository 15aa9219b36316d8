"""Data models using Pydantic."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class RenderRequest(BaseModel):
    """A validated ``/fetch-plant-uml`` request."""

    model_config = ConfigDict(frozen=True)

    uml_code: str
    response_type: Literal["SVG", "PNG"]
    return_as_uri: bool = False


class ScaleRequest(BaseModel):
    """A validated ``/add-scale-to-uml`` request."""

    model_config = ConfigDict(frozen=True)

    uml_code: str
    scale_width: int | None = None
    scale_height: int | None = None
    max: bool = False


class GeneratorQuery(BaseModel):
    """A validated ``/query-assistant-code-generator`` request."""

    model_config = ConfigDict(frozen=True)

    uml_code: str | None = None
    prompt: str
    timeout: int = 60000


class ExaminerQuery(BaseModel):
    """A validated ``/query-assistant-code-examiner`` request."""

    model_config = ConfigDict(frozen=True)

    uml_code: str
    query: str
    timeout: int = 10000


class GeneratorReply(BaseModel):
    """Assistant reply split around the generated PlantUML."""

    pre_code: str
    uml_code: str
    post_code: str


# Diagram library bodies


class UserRequest(BaseModel):
    uid: str = Field(..., min_length=1)
    email: str | None = None


class DiagramIdRequest(BaseModel):
    uml_id: str = Field(..., min_length=1)


class UserDiagramRequest(BaseModel):
    uid: str = Field(..., min_length=1)
    uml_id: str = Field(..., min_length=1)


class DiagramFields(BaseModel):
    """Editable diagram fields."""

    content: str = ""
    privacy: str = ""
    name: str = ""
    description: str = ""
    diagram: str = ""


class NewDiagramRequest(DiagramFields):
    uid: str = Field(..., min_length=1)


class UpdateDiagramRequest(DiagramFields):
    uml_id: str = Field(..., min_length=1)


class GalleryFilter(BaseModel):
    """Public gallery query: kind flags are OR-ed, the name filter is AND-ed."""

    model_config = ConfigDict(populate_by_name=True)

    c: bool = False
    s: bool = False
    u: bool = False
    a: bool = False
    seq: bool = False
    name_contains: str = Field("", alias="nameContains")

    @property
    def kinds(self) -> set[str]:
        """Diagram kinds selected by the flags."""
        selected = {
            "class": self.c,
            "state": self.s,
            "usecase": self.u,
            "activity": self.a,
            "sequence": self.seq,
        }
        return {kind for kind, enabled in selected.items() if enabled}
