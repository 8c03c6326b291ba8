# SPDX-License-Identifier: Apache-2.0

"""
Undirected connectivity between camps for resource sharing.

Each camp stores the IDs of its neighbours. An edge is written to both
camps as one logical operation: if the second write fails, the first is
rolled back.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from opentelemetry import trace

from ..domain.errors import CampNotFound, ReliefError, SameCampError
from ..models.entities import Camp
from .repositories import CampRepository

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class GraphResult:
    """Result of a camp graph operation."""
    success: bool
    camps: List[Camp] = field(default_factory=list)
    error: Optional[ReliefError] = None


class CampGraph:
    """Camp-to-camp connection management."""

    def __init__(self, camp_repository: CampRepository):
        self.camps = camp_repository

    def connect(self, camp_id_a: str, camp_id_b: str) -> GraphResult:
        """Connect two camps; connecting an already connected pair is a no-op."""
        with tracer.start_as_current_span(
            "camp_graph.connect", attributes={"camp.a": camp_id_a, "camp.b": camp_id_b}
        ):
            try:
                self._load_pair(camp_id_a, camp_id_b)
                added = self.camps.add_connection(camp_id_a, camp_id_b)
                try:
                    self.camps.add_connection(camp_id_b, camp_id_a)
                except Exception:
                    if added:
                        self.camps.remove_connection(camp_id_a, camp_id_b)
                    logger.error(
                        "Camp connection failed, first side rolled back",
                        extra={"camp_a": camp_id_a, "camp_b": camp_id_b},
                        exc_info=True
                    )
                    raise
                # Either camp may have been deleted between the load and the writes
                camp_a, camp_b = self._load_pair(camp_id_a, camp_id_b)
            except ReliefError as e:
                return GraphResult(success=False, error=e)

            logger.info("Camps connected", extra={"camp_a": camp_id_a, "camp_b": camp_id_b})
            return GraphResult(success=True, camps=[camp_a, camp_b])

    def disconnect(self, camp_id_a: str, camp_id_b: str) -> GraphResult:
        """Remove the connection between two camps; missing edges are a no-op."""
        with tracer.start_as_current_span(
            "camp_graph.disconnect", attributes={"camp.a": camp_id_a, "camp.b": camp_id_b}
        ):
            try:
                self._load_pair(camp_id_a, camp_id_b)
                removed = self.camps.remove_connection(camp_id_a, camp_id_b)
                try:
                    self.camps.remove_connection(camp_id_b, camp_id_a)
                except Exception:
                    if removed:
                        self.camps.add_connection(camp_id_a, camp_id_b)
                    raise
                camp_a, camp_b = self._load_pair(camp_id_a, camp_id_b)
            except ReliefError as e:
                return GraphResult(success=False, error=e)

            logger.info("Camps disconnected", extra={"camp_a": camp_id_a, "camp_b": camp_id_b})
            return GraphResult(success=True, camps=[camp_a, camp_b])

    def neighbours(self, camp_id: str) -> GraphResult:
        """Camps directly connected to the given camp."""
        camp = self.camps.get(camp_id)
        if camp is None:
            return GraphResult(success=False, error=CampNotFound(camp_id))
        connected = [self.camps.get(other_id) for other_id in camp.connected_camps]
        return GraphResult(success=True, camps=[c for c in connected if c is not None])

    def detach_camp(self, camp_id: str) -> int:
        """Remove a camp from every neighbour's connections."""
        removed = self.camps.remove_from_all_connections(camp_id)
        if removed:
            logger.info(f"Removed camp {camp_id} from {removed} neighbour(s)")
        return removed

    def _load_pair(self, camp_id_a: str, camp_id_b: str) -> Tuple[Camp, Camp]:
        if camp_id_a == camp_id_b:
            raise SameCampError("Cannot connect a camp to itself")
        camp_a = self.camps.get(camp_id_a)
        if camp_a is None:
            raise CampNotFound(camp_id_a)
        camp_b = self.camps.get(camp_id_b)
        if camp_b is None:
            raise CampNotFound(camp_id_b)
        return camp_a, camp_b
