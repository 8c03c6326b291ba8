# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel
from .entities import Coordinate, Resources
from .enums import CampStatus, Gender


class RequestModel(BaseModel):
    """Base for request bodies; accepts camelCase or snake_case keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra='forbid'
    )


class CoordinateFields(RequestModel):
    """Mixin for bodies carrying an optional latitude/longitude pair."""

    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @model_validator(mode='after')
    def validate_pair(self):
        """Latitude and longitude must be given together."""
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError('Latitude and longitude must be provided together')
        return self

    def coordinate(self) -> Optional[Coordinate]:
        if self.latitude is None:
            return None
        return Coordinate(latitude=self.latitude, longitude=self.longitude)


class CreateCampRequest(RequestModel):
    """Request model for registering a camp."""

    name: str = Field(..., min_length=1, max_length=200)
    address: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    capacity: int = Field(..., ge=1)
    resources: Resources = Field(default_factory=Resources)
    facilities: List[str] = Field(default_factory=list)
    status: CampStatus = Field(default=CampStatus.ACTIVE)
    managed_by: Optional[str] = Field(None)
    contact_number: Optional[str] = Field(None)

    @field_validator('status')
    @classmethod
    def validate_status(cls, v):
        if v == CampStatus.FULL:
            raise ValueError('Full status is derived from occupancy and cannot be set')
        return v


class UpdateCampRequest(CoordinateFields):
    """Request model for updating a camp. Occupancy is not editable."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    address: Optional[str] = Field(None, min_length=1)
    capacity: Optional[int] = Field(None, ge=1)
    resources: Optional[Resources] = Field(None)
    facilities: Optional[List[str]] = Field(None)
    status: Optional[CampStatus] = Field(None)
    managed_by: Optional[str] = Field(None)
    contact_number: Optional[str] = Field(None)


class CreateRefugeeRequest(CoordinateFields):
    """Request model for registering a refugee."""

    name: str = Field(..., min_length=1, max_length=200)
    age: int = Field(..., ge=0, le=150)
    gender: Gender = Field(...)
    contact_number: Optional[str] = Field(None)
    address: str = Field(..., min_length=1)
    family_members: int = Field(default=1, ge=1)
    medical_conditions: str = Field(default="None")


class UpdateRefugeeRequest(CoordinateFields):
    """Request model for updating a refugee. Placement is not editable."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    age: Optional[int] = Field(None, ge=0, le=150)
    gender: Optional[Gender] = Field(None)
    contact_number: Optional[str] = Field(None)
    address: Optional[str] = Field(None, min_length=1)
    family_members: Optional[int] = Field(None, ge=1)
    medical_conditions: Optional[str] = Field(None)


class GeocodeRequest(RequestModel):
    """Request model for resolving an address."""

    address: str = Field(..., min_length=1)


class DistanceRequest(RequestModel):
    """Request model for the distance calculator."""

    lat1: float = Field(..., ge=-90, le=90)
    lon1: float = Field(..., ge=-180, le=180)
    lat2: float = Field(..., ge=-90, le=90)
    lon2: float = Field(..., ge=-180, le=180)


class NearestCampsRequest(CoordinateFields):
    """Request model for the nearest camps lookup."""

    address: Optional[str] = Field(None, min_length=1)
    count: int = Field(default=5, ge=0, le=100)

    @model_validator(mode='after')
    def validate_location(self):
        if self.latitude is None and not self.address:
            raise ValueError('Please provide either coordinates or address')
        return self


class AssignRefugeeRequest(RequestModel):
    """Request model for assigning a registered refugee."""

    refugee_id: str = Field(..., min_length=1)


# Path parameters. Plain models: the field names must match the URL rule variables.

class CampPath(BaseModel):
    camp_id: str = Field(..., description="Camp ID")


class CampConnectionPath(BaseModel):
    camp_id: str = Field(..., description="Camp ID")
    target_camp_id: str = Field(..., description="ID of the camp to connect to")


class RefugeePath(BaseModel):
    refugee_id: str = Field(..., description="Refugee ID")
