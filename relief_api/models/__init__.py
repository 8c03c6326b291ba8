# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the relief camps platform.
"""

# Base models
from .base import BaseEntity, generate_object_id, utcnow

# Enumerations
from .enums import CampStatus, Gender, RefugeeStatus, ErrorKind

# Core entities
from .entities import Coordinate, Resources, Camp, Refugee

# Request models
from .requests import (
    CreateCampRequest,
    UpdateCampRequest,
    CreateRefugeeRequest,
    UpdateRefugeeRequest,
    GeocodeRequest,
    DistanceRequest,
    NearestCampsRequest,
    AssignRefugeeRequest,
    CampPath,
    CampConnectionPath,
    RefugeePath
)

# Response models
from .responses import HalLink, ProblemDetails

__all__ = [
    # Base models
    "BaseEntity",
    "generate_object_id",
    "utcnow",

    # Enumerations
    "CampStatus",
    "Gender",
    "RefugeeStatus",
    "ErrorKind",

    # Core entities
    "Coordinate",
    "Resources",
    "Camp",
    "Refugee",

    # Request models
    "CreateCampRequest",
    "UpdateCampRequest",
    "CreateRefugeeRequest",
    "UpdateRefugeeRequest",
    "GeocodeRequest",
    "DistanceRequest",
    "NearestCampsRequest",
    "AssignRefugeeRequest",
    "CampPath",
    "CampConnectionPath",
    "RefugeePath",

    # Response models
    "HalLink",
    "ProblemDetails"
]
