"""
Health Check Service

Reports storage backend health, camp intake summary and basic system
metrics for the relief camps API.
"""

import os
import time
import psutil
from typing import Dict, Any, Optional
from opentelemetry import trace

from ..domain.occupancy import INTAKE_STATUSES
from ..models.base import utcnow
from .mongodb import MongoDBService
from .repositories import CampRepository

tracer = trace.get_tracer(__name__)


class HealthCheckService:
    """Service for system health monitoring."""

    def __init__(
        self,
        camp_repository: CampRepository,
        storage_backend: str = "memory",
        mongodb_service: Optional[MongoDBService] = None,
        service_version: str = "1.0.0",
        environment: str = "development"
    ):
        self.camp_repository = camp_repository
        self.storage_backend = storage_backend
        self.mongodb_service = mongodb_service
        self.service_version = service_version
        self.environment = environment

    def get_health(self, include_metrics: bool = True) -> Dict[str, Any]:
        """Overall health with storage status and, optionally, system metrics."""
        with tracer.start_as_current_span("health.check") as span:
            start_time = time.time()

            storage_health = self._check_storage_health()
            intake = self._get_intake_summary()
            overall_status = self._determine_overall_status(storage_health["status"], intake)

            health_data = {
                "status": overall_status,
                "service": "relief-camps-api",
                "version": self.service_version,
                "environment": self.environment,
                "timestamp": utcnow().isoformat(),
                "response_time_ms": round((time.time() - start_time) * 1000, 2),
                "dependencies": {"storage": storage_health},
                "camps": intake
            }
            if include_metrics:
                health_data["system_metrics"] = self._get_system_metrics()

            span.set_attributes({
                "health.overall_status": overall_status,
                "health.storage_status": storage_health["status"],
                "health.storage_backend": self.storage_backend
            })
            return health_data

    def _check_storage_health(self) -> Dict[str, Any]:
        if self.storage_backend == "mongodb" and self.mongodb_service is not None:
            with tracer.start_as_current_span("health.mongodb_check"):
                start_time = time.time()
                health = self.mongodb_service.health_check()
                health["backend"] = "mongodb"
                health["response_time_ms"] = round((time.time() - start_time) * 1000, 2)
                return health
        return {"status": "healthy", "backend": self.storage_backend}

    def _get_intake_summary(self) -> Optional[Dict[str, int]]:
        """Camp counts; None when storage cannot be read."""
        try:
            camps = self.camp_repository.list()
        except Exception as e:
            trace.get_current_span().record_exception(e)
            return None
        accepting = [camp for camp in camps if camp.status in INTAKE_STATUSES]
        return {
            "total": len(camps),
            "accepting_intake": len(accepting),
            "available_places": sum(camp.available_capacity for camp in accepting)
        }

    def _get_system_metrics(self) -> Dict[str, Any]:
        """Get basic system performance metrics."""
        try:
            memory = psutil.virtual_memory()
            disk = psutil.disk_usage('/')
            return {
                "cpu_percent": psutil.cpu_percent(interval=0.1),
                "memory": {
                    "used_mb": round(memory.used / 1024 / 1024, 2),
                    "total_mb": round(memory.total / 1024 / 1024, 2),
                    "percent": memory.percent
                },
                "disk": {
                    "used_gb": round(disk.used / 1024 / 1024 / 1024, 2),
                    "total_gb": round(disk.total / 1024 / 1024 / 1024, 2),
                    "percent": round((disk.used / disk.total) * 100, 2)
                },
                "load_average": list(os.getloadavg()) if hasattr(os, 'getloadavg') else None
            }
        except (OSError, psutil.Error) as e:
            return {"error": f"Failed to collect system metrics: {str(e)}"}

    @staticmethod
    def _determine_overall_status(storage_status: str, intake: Optional[Dict[str, int]]) -> str:
        if storage_status != "healthy" or intake is None:
            return "unhealthy"
        # Serving, but no camp can take anyone in
        if intake["total"] > 0 and intake["available_places"] == 0:
            return "degraded"
        return "healthy"
