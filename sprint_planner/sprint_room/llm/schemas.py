from typing import Annotated, Any, Dict, Literal, Union

from pydantic import BaseModel, Field


class StructuredResponse(BaseModel):
    """Provider already handed back a parsed object."""
    kind: Literal["structured"] = "structured"
    value: Dict[str, Any]


class RawResponse(BaseModel):
    """Plain model text, may be wrapped in code fences."""
    kind: Literal["raw"] = "raw"
    text: str


GenerationResponse = Annotated[Union[StructuredResponse, RawResponse], Field(discriminator="kind")]
