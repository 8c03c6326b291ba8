# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
CORS (Cross-Origin Resource Sharing) middleware for browser clients
such as the camp map dashboard.
"""

from flask import Flask, request, make_response
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

DEVELOPMENT_ORIGINS = [
    'http://localhost:3000',
    'http://localhost:5173',
    'http://127.0.0.1:3000',
    'http://127.0.0.1:5173'
]


def parse_origins(value: str, environment: str = 'development') -> List[str]:
    """Comma-separated origins; local dev servers are added in development."""
    origins = [origin.strip() for origin in (value or '').split(',') if origin.strip()]
    if environment == 'development':
        origins.extend(o for o in DEVELOPMENT_ORIGINS if o not in origins)
    return origins


class CORSMiddleware:
    """CORS middleware for Flask applications."""

    def __init__(
        self,
        app: Flask,
        allowed_origins: Optional[List[str]] = None,
        allowed_methods: Optional[List[str]] = None,
        allowed_headers: Optional[List[str]] = None,
        max_age: int = 86400
    ):
        self.app = app
        self.allowed_origins = allowed_origins or []
        self.allowed_methods = allowed_methods or ['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS']
        self.allowed_headers = allowed_headers or [
            'Accept', 'Content-Type', 'X-Requested-With', 'X-Request-ID'
        ]
        self.expose_headers = ['Content-Length', 'Content-Type', 'X-Trace-Id']
        self.max_age = max_age

        self.register_cors_handlers()

    def is_origin_allowed(self, origin: Optional[str]) -> bool:
        if not origin:
            return False
        for allowed_origin in self.allowed_origins:
            if allowed_origin == '*' or allowed_origin == origin:
                return True
            if allowed_origin.endswith('*') and origin.startswith(allowed_origin[:-1]):
                return True
        return False

    def add_cors_headers(self, response, origin: str):
        response.headers['Access-Control-Allow-Origin'] = origin
        response.headers['Vary'] = 'Origin'
        response.headers['Access-Control-Allow-Methods'] = ', '.join(self.allowed_methods)
        response.headers['Access-Control-Allow-Headers'] = ', '.join(self.allowed_headers)
        response.headers['Access-Control-Expose-Headers'] = ', '.join(self.expose_headers)
        response.headers['Access-Control-Max-Age'] = str(self.max_age)
        return response

    def register_cors_handlers(self):
        """Register CORS handlers with Flask application."""

        @self.app.before_request
        def handle_preflight():
            if request.method == 'OPTIONS':
                origin = request.headers.get('Origin')
                if not self.is_origin_allowed(origin):
                    logger.warning(f"CORS preflight rejected for origin: {origin}")
                    return make_response('', 403)
                return self.add_cors_headers(make_response('', 204), origin)

        @self.app.after_request
        def add_cors_headers_to_response(response):
            origin = request.headers.get('Origin')
            if request.method != 'OPTIONS' and self.is_origin_allowed(origin):
                self.add_cors_headers(response, origin)
            return response


def configure_cors(app: Flask, **kwargs) -> CORSMiddleware:
    """Configure CORS for Flask application."""
    return CORSMiddleware(app, **kwargs)
