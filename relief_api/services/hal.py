# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Camps and refugees carry affordance links that depend on their state:
a pending refugee can be assigned, an assigned one can be released.
"""

from typing import Dict, List, Any, Optional
from urllib.parse import urljoin, urlencode
import math

from ..domain.errors import ReliefError
from ..domain.geo import RankedSite
from ..models.entities import Camp, Refugee
from ..models.enums import RefugeeStatus
from ..models.responses import HalLink

PROBLEM_BASE_URL = "https://api.relief-camps.org/problems/"


def entity_payload(entity) -> Dict[str, Any]:
    """JSON-ready camelCase representation with a flat latitude/longitude."""
    data = entity.model_dump(mode='json', by_alias=True)
    coordinate = data.pop('coordinate', None)
    if coordinate:
        data['latitude'] = coordinate['latitude']
        data['longitude'] = coordinate['longitude']
    if isinstance(entity, Camp):
        data['availableCapacity'] = entity.available_capacity
    return data


def _links(links: Dict[str, HalLink]) -> Dict[str, Any]:
    return {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/') + '/'

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        templated: Optional[bool] = None
    ) -> HalLink:
        href = urljoin(self.base_url, path.lstrip('/'))
        return HalLink(href=href, method=method, type=content_type, title=title, templated=templated)

    def build_action_link(self, path: str, method: str = "POST", title: Optional[str] = None) -> HalLink:
        return self.build_link(path, method=method, content_type="application/json", title=title)


class PaginationLinkBuilder:
    """Builder for pagination links in HAL collections."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def _page_link(self, path: str, params: Dict[str, Any], page: int, page_size: int, title: str) -> HalLink:
        query = urlencode({**params, 'page': page, 'page_size': page_size})
        return self.link_builder.build_link(f"{path}?{query}", title=title)

    def build_pagination_links(
        self,
        base_path: str,
        current_page: int,
        total_pages: int,
        page_size: int,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, HalLink]:
        params = {k: v for k, v in (query_params or {}).items() if v is not None}
        links = {'self': self._page_link(base_path, params, current_page, page_size, "Current page")}

        if current_page > 1:
            links['first'] = self._page_link(base_path, params, 1, page_size, "First page")
            links['prev'] = self._page_link(base_path, params, current_page - 1, page_size, "Previous page")

        if current_page < total_pages:
            links['next'] = self._page_link(base_path, params, current_page + 1, page_size, "Next page")
            links['last'] = self._page_link(base_path, params, total_pages, page_size, "Last page")

        return links


class AffordanceLinkBuilder:
    """Conditional affordance links based on entity state."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def build_camp_affordances(self, camp: Camp) -> Dict[str, Any]:
        base_path = f"/api/camps/{camp.id}"
        links = {
            'self': self.link_builder.build_link(base_path, title="Self"),
            'collection': self.link_builder.build_link("/api/camps", title="Camps"),
            'edit': self.link_builder.build_action_link(base_path, method="PUT", title="Edit camp"),
            'connect': self.link_builder.build_link(
                f"{base_path}/connect/{{targetCampId}}", method="POST",
                title="Connect to another camp", templated=True
            ),
            'refugees': self.link_builder.build_link(
                f"/api/refugees?{urlencode({'camp_id': camp.id})}", title="Assigned refugees"
            )
        }

        # Only empty camps can be removed
        if camp.current_occupancy == 0:
            links['delete'] = self.link_builder.build_link(base_path, method="DELETE", title="Delete camp")

        if camp.connected_camps:
            links['connectedCamps'] = [
                self.link_builder.build_link(f"/api/camps/{other_id}", title="Connected camp")
                for other_id in camp.connected_camps
            ]
        return links

    def build_refugee_affordances(self, refugee: Refugee) -> Dict[str, Any]:
        base_path = f"/api/refugees/{refugee.id}"
        links = {
            'self': self.link_builder.build_link(base_path, title="Self"),
            'collection': self.link_builder.build_link("/api/refugees", title="Refugees"),
            'edit': self.link_builder.build_action_link(base_path, method="PUT", title="Edit refugee"),
            'delete': self.link_builder.build_link(base_path, method="DELETE", title="Delete refugee")
        }

        if refugee.status == RefugeeStatus.PENDING:
            links['assign'] = self.link_builder.build_action_link(
                "/api/assignment/assign-refugee", title="Assign to nearest camp"
            )
        if refugee.assigned_camp:
            links['release'] = self.link_builder.build_action_link(
                f"{base_path}/release", title="Release from camp"
            )
            links['camp'] = self.link_builder.build_link(
                f"/api/camps/{refugee.assigned_camp}", title="Assigned camp"
            )
        return links


class HalFormatter:
    """High-level HAL formatter for camps, refugees and assignments."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)
        self.pagination_builder = PaginationLinkBuilder(base_url)
        self.affordance_builder = AffordanceLinkBuilder(base_url)

    def _with_links(self, data: Dict[str, Any], links: Dict[str, Any]) -> Dict[str, Any]:
        rendered = {}
        for rel, link in links.items():
            if isinstance(link, list):
                rendered[rel] = [item.model_dump(exclude_none=True) for item in link]
            else:
                rendered[rel] = link.model_dump(exclude_none=True)
        data['_links'] = rendered
        return data

    def format_camp(self, camp: Camp) -> Dict[str, Any]:
        return self._with_links(entity_payload(camp), self.affordance_builder.build_camp_affordances(camp))

    def format_refugee(self, refugee: Refugee) -> Dict[str, Any]:
        return self._with_links(
            entity_payload(refugee), self.affordance_builder.build_refugee_affordances(refugee)
        )

    def format_collection(
        self,
        items: List[Dict[str, Any]],
        rel: str,
        page: int,
        page_size: int,
        total: int,
        collection_path: str,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Paginated collection with items embedded under rel."""
        total_pages = max(1, math.ceil(total / page_size)) if page_size > 0 else 1
        pagination_links = self.pagination_builder.build_pagination_links(
            collection_path, page, total_pages, page_size, query_params
        )
        return {
            'total': total,
            'page': page,
            'pageSize': page_size,
            'totalPages': total_pages,
            '_links': _links(pagination_links),
            '_embedded': {rel: items}
        }

    def format_camp_collection(
        self,
        camps: List[Camp],
        page: int,
        page_size: int,
        collection_path: str = "/api/camps",
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        start = (page - 1) * page_size
        items = [self.format_camp(camp) for camp in camps[start:start + page_size]]
        return self.format_collection(
            items, 'camps', page, page_size, len(camps), collection_path, query_params
        )

    def format_refugee_collection(
        self,
        refugees: List[Refugee],
        page: int,
        page_size: int,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        start = (page - 1) * page_size
        items = [self.format_refugee(refugee) for refugee in refugees[start:start + page_size]]
        return self.format_collection(
            items, 'refugees', page, page_size, len(refugees), "/api/refugees", query_params
        )

    def format_assignment(self, refugee: Refugee, camp: Optional[Camp] = None,
                          distance_km: Optional[float] = None) -> Dict[str, Any]:
        """Refugee placement; camp and distance are null for a pending refugee."""
        response = {
            'assigned': camp is not None,
            'distanceKm': round(distance_km, 2) if distance_km is not None else None,
            'message': (
                f"Refugee assigned to {camp.name}" if camp is not None
                else "Refugee registered but no available camps found"
            ),
            '_embedded': {
                'refugee': self.format_refugee(refugee),
                'camp': self.format_camp(camp) if camp is not None else None
            }
        }
        links = {'refugee': self.link_builder.build_link(f"/api/refugees/{refugee.id}", title="Refugee")}
        if camp is not None:
            links['camp'] = self.link_builder.build_link(f"/api/camps/{camp.id}", title="Camp")
        return self._with_links(response, links)

    def format_ranked_camps(self, ranked: List[RankedSite]) -> Dict[str, Any]:
        """Nearest camps, closest first, each with its distance."""
        items = []
        for entry in ranked:
            item = self.format_camp(entry.site)
            item['distanceKm'] = round(entry.distance_km, 2)
            items.append(item)
        return {
            'count': len(items),
            '_embedded': {'camps': items},
            '_links': _links({'self': self.link_builder.build_link("/api/assignment/nearest-camps", method="POST")})
        }

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        kind: Optional[str] = None,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """RFC 7807 problem document with HAL links."""
        error_response = {
            'type': f"{PROBLEM_BASE_URL}{error_type}",
            'title': title,
            'status': status,
            'detail': detail,
            'instance': instance
        }
        if kind:
            error_response['kind'] = kind
        if validation_errors:
            error_response['errors'] = validation_errors

        links = {'help': self.link_builder.build_link(f"/docs/errors#{error_type}", title="Error documentation")}
        if error_type == "validation-error":
            links['schema'] = self.link_builder.build_link("/openapi/openapi.json", title="API schema")
        elif error_type == "geocode-failure":
            links['nearestCamps'] = self.link_builder.build_action_link(
                "/api/assignment/nearest-camps", title="Search by coordinates instead"
            )
        error_response['_links'] = _links(links)
        return error_response

    def format_domain_error(self, error: ReliefError, instance: str) -> Dict[str, Any]:
        return self.build_error_response(
            error.error_type,
            error.title,
            error.status_code,
            error.message,
            instance,
            kind=error.kind.value,
            validation_errors=error.details
        )

    def format_validation_error(self, detail: str, instance: str,
                                validation_errors: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self.build_error_response(
            "validation-error", "Validation Error", 400, detail, instance,
            kind="ValidationError", validation_errors=validation_errors
        )

    def format_not_found_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.build_error_response(
            "resource-not-found", "Resource Not Found", 404, detail, instance, kind="NotFound"
        )

    def format_server_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.build_error_response(
            "internal-server-error", "Internal Server Error", 500, detail, instance, kind="InternalError"
        )


def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)
