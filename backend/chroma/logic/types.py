from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Channel = Annotated[int, Field(ge=0, le=255)]


class Rgb(BaseModel):
    """A point in the 0-255 RGB cube."""

    model_config = ConfigDict(frozen=True)

    r: Channel
    g: Channel
    b: Channel


class ColorPrompt(BaseModel):
    """A named target color with the description players guess from."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=500)
    rgb: Rgb


class PromptView(BaseModel):
    """The part of a ColorPrompt shown to players while a round is running."""

    name: str
    description: str


class CamelModel(BaseModel):
    """Wire model whose snake_case fields travel as camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
