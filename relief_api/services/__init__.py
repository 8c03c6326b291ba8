# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - storage, geocoding and the assignment workflow.
"""

from .mongodb import MongoDBService
from .assignment import AssignmentEngine, AssignmentResult, EngineResult
from .camp_graph import CampGraph, GraphResult
from .geocoder import NominatimGeocoder, GeocodedAddress
from .registry import CampRegistry, RefugeeRegistry

__all__ = [
    "MongoDBService",
    "AssignmentEngine",
    "AssignmentResult",
    "EngineResult",
    "CampGraph",
    "GraphResult",
    "NominatimGeocoder",
    "GeocodedAddress",
    "CampRegistry",
    "RefugeeRegistry"
]
