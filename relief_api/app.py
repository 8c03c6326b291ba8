"""
Relief Camps API - Flask Application Entry Point

Builds the Flask application with OpenAPI 3.0 support, wires the storage
backend, the assignment engine and the HAL formatter, and registers the
camp, refugee and assignment blueprints.
"""

import os
import logging
from typing import Optional
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag

from .config import Settings
from .observability.config import setup_observability
from .observability.middleware import add_observability_middleware
from .middleware.cors import configure_cors, parse_origins
from .middleware.error_handler import ErrorHandlerMiddleware, register_custom_error_handlers
from .models.base import utcnow
from .services.assignment import AssignmentEngine
from .services.camp_graph import CampGraph
from .services.geocoder import NominatimGeocoder
from .services.hal import create_hal_formatter
from .services.health import HealthCheckService
from .services.memory_store import InMemoryCampRepository, InMemoryRefugeeRepository
from .services.mongodb import MongoDBService
from .services.registry import CampRegistry, RefugeeRegistry
from .services.repositories import MongoCampRepository, MongoRefugeeRepository

logger = logging.getLogger(__name__)

info = Info(
    title="Relief Camps API",
    version="1.0.0",
    description="Refugee registration and nearest-camp assignment with HATEOAS Level-3 support"
)

tags = [
    Tag(name="Camps", description="Relief camp management"),
    Tag(name="Refugees", description="Refugee registration and release"),
    Tag(name="Assignment", description="Nearest-camp search and refugee placement"),
    Tag(name="Health", description="System health and status")
]


def _build_repositories(settings: Settings):
    if settings.storage_backend == 'memory':
        return InMemoryCampRepository(), InMemoryRefugeeRepository(), None

    mongodb_service = MongoDBService.from_settings(settings)
    return MongoCampRepository(mongodb_service), MongoRefugeeRepository(mongodb_service), mongodb_service


def create_app(settings: Optional[Settings] = None, geocoder: Optional[NominatimGeocoder] = None) -> OpenAPI:
    """
    Create the Flask application.

    Args:
        settings: Runtime settings; read from the environment when None
        geocoder: Geocoding client override, mainly for tests

    Returns:
        Configured OpenAPI (Flask) application
    """
    settings = settings or Settings.from_env()
    setup_observability(settings.environment, settings.otel_enabled, settings.service_version)

    app = OpenAPI(__name__, info=info)
    app.config.update(settings.to_flask_config())
    app.settings = settings

    add_observability_middleware(app, instrument=settings.otel_enabled)

    camp_repository, refugee_repository, mongodb_service = _build_repositories(settings)
    geocoder = geocoder or NominatimGeocoder(
        base_url=settings.geocoder_url,
        user_agent=settings.geocoder_user_agent,
        timeout=settings.geocoder_timeout_seconds
    )

    assignment_engine = AssignmentEngine(
        camp_repository,
        refugee_repository,
        geocoder=geocoder,
        max_attempts=settings.assignment_max_attempts
    )
    camp_graph = CampGraph(camp_repository)
    hal_formatter = create_hal_formatter(settings.base_url)
    health_service = HealthCheckService(
        camp_repository,
        storage_backend=settings.storage_backend,
        mongodb_service=mongodb_service,
        service_version=settings.service_version,
        environment=settings.environment
    )

    ErrorHandlerMiddleware(app, settings.base_url)
    register_custom_error_handlers(app, hal_formatter)
    configure_cors(app, allowed_origins=parse_origins(settings.cors_origins, settings.environment))

    # Make services available to routes
    app.mongodb_service = mongodb_service
    app.camp_repository = camp_repository
    app.refugee_repository = refugee_repository
    app.geocoder = geocoder
    app.assignment_engine = assignment_engine
    app.camp_graph = camp_graph
    app.camp_registry = CampRegistry(camp_repository, refugee_repository, camp_graph)
    app.refugee_registry = RefugeeRegistry(refugee_repository, assignment_engine, geocoder)
    app.hal_formatter = hal_formatter
    app.health_service = health_service

    from .routes.camps import camps_bp
    from .routes.refugees import refugees_bp
    from .routes.assignments import assignment_bp

    app.register_api(camps_bp)
    app.register_api(refugees_bp)
    app.register_api(assignment_bp)

    @app.get('/api/healthz', tags=[tags[3]])
    def health_check():
        """Health check with storage status, camp intake summary and system metrics"""
        try:
            health_data = health_service.get_health()
        except Exception as e:
            logger.error(f"Health check failed: {e}", exc_info=True)
            health_data = {
                "status": "unhealthy",
                "service": "relief-camps-api",
                "version": settings.service_version,
                "environment": settings.environment,
                "timestamp": utcnow().isoformat(),
                "error": f"Health check service failed: {str(e)}"
            }

        health_data['_links'] = {
            'self': hal_formatter.link_builder.build_link('/api/healthz').model_dump(exclude_none=True),
            'camps': hal_formatter.link_builder.build_link('/api/camps').model_dump(exclude_none=True)
        }
        status_code = 503 if health_data["status"] == "unhealthy" else 200
        return jsonify(health_data), status_code

    logger.info(
        "Relief camps API initialized",
        extra={"environment": settings.environment, "storage_backend": settings.storage_backend}
    )
    return app


if __name__ == '__main__':
    application = create_app()
    application.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=application.config['DEBUG']
    )
