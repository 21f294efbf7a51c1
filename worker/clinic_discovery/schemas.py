"""Schemas for the files the pipeline persists.

Entity and city records are read by the website's content loader, so the
serialized keys use its camelCase names. Every list defaults to ``[]`` and a
``null`` list is coerced to ``[]`` on load, which keeps empty collections
explicit in the YAML output.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, get_origin

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

CityStatus = Literal["queued", "running", "done", "failed"]


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def list_field_aliases(cls) -> List[str]:
        return [
            info.alias or name
            for name, info in cls.model_fields.items()
            if get_origin(info.annotation) is list
        ]

    @field_validator("*", mode="before")
    @classmethod
    def _null_list_to_empty(cls, value: Any, info: ValidationInfo) -> Any:
        field_info = cls.model_fields.get(info.field_name)
        if value is None and field_info is not None and get_origin(field_info.annotation) is list:
            return []
        return value

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Coordinates(BaseModel):
    lat: float = 0.0
    lng: float = 0.0


class Review(BaseModel):
    author: str
    rating: float
    date: str
    text: str
    source: str = "Google"


class EntityRecord(_Record):
    name: str
    slug: str
    city_slug: str = Field(alias="city")
    city_display: str = Field(alias="cityDisplay")
    state: str
    state_full_name: str = Field(default="", alias="stateFullName")
    county: str = ""
    neighborhood: str = ""
    address: str = ""
    zip_code: str = Field(default="", alias="zipCode")
    coordinates: Coordinates = Field(default_factory=Coordinates)
    phone: str = ""
    website: Optional[str] = None
    google_maps_url: Optional[str] = Field(default=None, alias="googleMapsUrl")
    category: str = ""
    category_label: str = Field(default="", alias="categoryLabel")
    description: str = ""
    specialties: List[str] = Field(default_factory=list)
    rating: float = Field(default=0.0, ge=0, le=5)
    review_count: int = Field(default=0, ge=0, alias="reviewCount")
    reviews: List[Review] = Field(default_factory=list, max_length=5)
    logo: Optional[str] = None
    year_established: Optional[int] = Field(default=None, alias="yearEstablished")
    certifications: List[str] = Field(default_factory=list)
    verified: bool = False
    featured: bool = False
    last_updated: str = Field(alias="lastUpdated")


class LocationRecord(_Record):
    name: str
    slug: str = Field(max_length=60, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    state: str
    state_full_name: str = Field(default="", alias="stateFullName")
    county: str = ""
    description: str = ""
    meta_description: str = Field(default="", alias="metaDescription")
    cover_image: Optional[str] = Field(default=None, alias="coverImage")
    featured_clinics: List[str] = Field(default_factory=list, alias="featuredClinics")


class CityEntry(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    city: str
    state: str
    status: CityStatus = "queued"
    clinics: Optional[int] = None
    date: Optional[str] = None
    error: Optional[str] = None


class Region(BaseModel):
    name: str
    cities: List[CityEntry] = Field(default_factory=list)


class LocationsLedger(BaseModel):
    regions: Dict[str, Region] = Field(default_factory=dict)
