"""Request and response models for the generation endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field


class TitlesRequest(BaseModel):
    posts: int = Field(default=0, ge=0)
    pages: int = Field(default=0, ge=0)
    instructions: str = ""
    model: str = Field(min_length=1)
    generate_images: bool = True


class PostTitle(BaseModel):
    title: str
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    illustration_description: str = ""


class PageTitle(BaseModel):
    title: str


class TitlesResponse(BaseModel):
    posts: List[PostTitle] = Field(default_factory=list)
    pages: List[PageTitle] = Field(default_factory=list)


class PostRequest(BaseModel):
    title: str = Field(min_length=1)
    post_type: Literal["post", "page"]
    instructions: str = ""
    model: str = Field(min_length=1)
    generate_image: bool = False
    image_model: str = ""
    # Either plain names or {"name": ...} objects.
    categories: List[str | Dict[str, Any]] = Field(default_factory=list)
    tags: List[str | Dict[str, Any]] = Field(default_factory=list)
    illustration_description: str = ""


class PostResponse(BaseModel):
    post_id: int
    title: str
    post_type: str
    attachment_id: int = 0
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    image_error: str | None = None


class TaxonomyItem(BaseModel):
    post_id: int
    title: str


class TaxonomiesRequest(BaseModel):
    items: List[TaxonomyItem] = Field(min_length=1)
    categories: bool = False
    tags: bool = False
    instructions: str = ""
    model: str = Field(min_length=1)


class Assignment(BaseModel):
    post_id: int
    term_id: int
    type: Literal["category", "tag"]


class TaxonomiesResponse(BaseModel):
    categories_created: int = 0
    tags_created: int = 0
    assignments: List[Assignment] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    code: str
    message: str
