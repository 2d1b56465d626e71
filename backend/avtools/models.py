# avtools/models.py
"""
Pydantic shapes exchanged with the frontend. JSON keys are camelCase
(productId, avgRating, ...); Python attributes stay snake_case.
"""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, constr, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def dump(self) -> dict:
        return self.model_dump(by_alias=True)


# ---------------------------
# Read models
# ---------------------------
class Product(CamelModel):
    id: str
    slug: str = ""
    name: str = ""
    vendor: str = ""
    website: str = ""
    description: str = ""
    categories: List[str] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    logo_url: Optional[str] = None
    screenshots: List[str] = Field(default_factory=list)
    avg_rating: float = 0
    review_count: int = 0
    recommend_pct: float = 0  # 0..100


class Review(CamelModel):
    id: str
    product_id: str = ""
    display_name: str = "Anonymous"
    role: str = "Other"
    fleet_size: str = "Small"
    rating: int = 0  # 1..5
    pros: str = ""
    cons: str = ""
    would_recommend: bool = False
    date: str = ""  # ISO


class ProductPage(CamelModel):
    found: bool
    product: Optional[Product] = None
    reviews: List[Review] = Field(default_factory=list)


# ---------------------------
# Submissions
# ---------------------------
class ReviewIn(CamelModel):
    product_id: constr(strip_whitespace=True, min_length=1)
    reviewer_name: str = ""
    email: Optional[EmailStr] = None  # not shown publicly
    role: str = "Other"
    fleet_size: str = "Small"
    rating: int = Field(..., ge=1, le=5)
    pros: str = ""
    cons: str = ""
    anonymous: bool = False
    would_recommend: bool = False

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email(cls, v):
        # the review form always sends the key, often empty
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("role", "fleet_size", mode="before")
    @classmethod
    def _default_facets(cls, v, info):
        if v is None or (isinstance(v, str) and not v.strip()):
            return "Other" if info.field_name == "role" else "Small"
        return v


class LeadIn(CamelModel):
    product_id: constr(strip_whitespace=True, min_length=1)
    name: constr(strip_whitespace=True, min_length=1)
    email: EmailStr
    company: str = ""
    role: str = ""
    message: str = ""

    @field_validator("company", "role", "message", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v
