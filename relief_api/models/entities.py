# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the relief camps platform.
"""

from datetime import datetime
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from .base import BaseEntity, utcnow
from .enums import CampStatus, Gender, RefugeeStatus


class Coordinate(BaseModel):
    """Geographic point in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in degrees")

    def to_geojson(self) -> Dict[str, Any]:
        """GeoJSON point, longitude first."""
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}


class Resources(BaseModel):
    """Stock counters held by a camp."""

    food: int = Field(default=0, ge=0)
    water: int = Field(default=0, ge=0)
    medical: int = Field(default=0, ge=0)
    shelter: int = Field(default=0, ge=0)


class Camp(BaseEntity):
    """Relief site with finite capacity."""

    name: str = Field(..., min_length=1, max_length=200, description="Unique camp name")
    address: str = Field(..., min_length=1, description="Camp address")
    coordinate: Coordinate = Field(..., description="Camp location")
    capacity: int = Field(..., ge=1, description="Maximum number of persons")
    current_occupancy: int = Field(default=0, ge=0, description="Persons currently allocated")
    resources: Resources = Field(default_factory=Resources)
    facilities: List[str] = Field(default_factory=list, description="Available facilities")
    connected_camps: List[str] = Field(default_factory=list, description="Connected camp IDs")
    status: CampStatus = Field(default=CampStatus.ACTIVE, description="Intake status")
    managed_by: str = Field(default="Disaster Management Authority")
    contact_number: Optional[str] = Field(None)
    established_date: datetime = Field(default_factory=utcnow)

    @field_validator('name', 'address')
    @classmethod
    def validate_text(cls, v):
        """Strip and reject blank text."""
        if not v.strip():
            raise ValueError('Value cannot be empty')
        return v.strip()

    @field_validator('facilities')
    @classmethod
    def validate_facilities(cls, v):
        """Facilities behave as a set; keep first occurrence order."""
        seen = []
        for facility in v:
            facility = facility.strip()
            if facility and facility not in seen:
                seen.append(facility)
        return seen

    @field_validator('connected_camps')
    @classmethod
    def validate_connected_camps(cls, v):
        """Connections behave as a set."""
        return list(dict.fromkeys(v))

    @model_validator(mode='after')
    def validate_occupancy(self):
        """Occupancy must stay within capacity."""
        if self.current_occupancy > self.capacity:
            raise ValueError(
                f'Occupancy {self.current_occupancy} exceeds capacity {self.capacity}'
            )
        if self.id in self.connected_camps:
            raise ValueError('Camp cannot be connected to itself')
        return self

    @property
    def available_capacity(self) -> int:
        return self.capacity - self.current_occupancy


class Refugee(BaseEntity):
    """Displaced-person record representing one family unit."""

    name: str = Field(..., min_length=1, max_length=200, description="Refugee name")
    age: int = Field(..., ge=0, le=150, description="Age in years")
    gender: Gender = Field(..., description="Gender")
    contact_number: Optional[str] = Field(None)
    address: str = Field(..., min_length=1, description="Address or place of origin")
    coordinate: Coordinate = Field(..., description="Resolved location")
    family_members: int = Field(default=1, ge=1, description="Persons in the family unit")
    medical_conditions: str = Field(default="None")
    assigned_camp: Optional[str] = Field(None, description="Assigned camp ID")
    status: RefugeeStatus = Field(default=RefugeeStatus.PENDING)
    registration_date: datetime = Field(default_factory=utcnow)

    @field_validator('name', 'address')
    @classmethod
    def validate_text(cls, v):
        """Strip and reject blank text."""
        if not v.strip():
            raise ValueError('Value cannot be empty')
        return v.strip()

    @field_validator('contact_number')
    @classmethod
    def validate_contact_number(cls, v):
        if v is None:
            return v
        return v.strip() or None

    @model_validator(mode='after')
    def validate_assignment_state(self):
        """An assigned camp and a placed status go together."""
        placed = self.status in (RefugeeStatus.ASSIGNED, RefugeeStatus.RELOCATED)
        if (self.assigned_camp is not None) != placed:
            raise ValueError(
                f'Refugee with status {self.status} cannot have assigned camp {self.assigned_camp}'
            )
        return self

    def is_assigned(self) -> bool:
        return self.assigned_camp is not None

    def assigned_to(self, camp_id: str) -> "Refugee":
        """Copy of this record placed in the given camp."""
        return self.model_copy(update={
            "assigned_camp": camp_id,
            "status": RefugeeStatus.ASSIGNED.value,
            "updated_at": utcnow()
        })

    def detached(self) -> "Refugee":
        """Copy of this record back in the pending queue."""
        return self.model_copy(update={
            "assigned_camp": None,
            "status": RefugeeStatus.PENDING.value,
            "updated_at": utcnow()
        })
