# supplychain/schemas/vision.py - аннотации Cloud Vision, только нужные нам поля

from __future__ import annotations
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class Vertex(BaseModel):
    x: Optional[float] = None
    y: Optional[float] = None


class BoundingPoly(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    vertices: List[Vertex] = Field(default_factory=list)
    normalized_vertices: List[Vertex] = Field(default_factory=list, alias="normalizedVertices")


class LocalizedObject(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    score: Optional[float] = None
    bounding_poly: Optional[BoundingPoly] = Field(None, alias="boundingPoly")


class TextAnnotation(BaseModel):
    description: Optional[str] = None


class LabelAnnotation(BaseModel):
    description: Optional[str] = None
    score: Optional[float] = None
