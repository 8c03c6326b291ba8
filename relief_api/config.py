# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Environment configuration for the relief camps API.
"""

import os
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

STORAGE_BACKENDS = ('mongodb', 'memory')


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


def _env_optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None


@dataclass
class Settings:
    """Runtime settings, read from the environment by from_env()."""
    environment: str = 'development'
    mongodb_uri: str = 'mongodb://localhost:27017/relief_camps_dev'
    mongodb_database: str = 'relief_camps_dev'
    mongodb_max_pool_size: int = 10
    mongodb_server_selection_timeout_ms: int = 5000
    storage_backend: str = 'mongodb'
    geocoder_url: str = 'https://nominatim.openstreetmap.org'
    geocoder_user_agent: str = 'RefugeeManagementSystem/1.0'
    geocoder_timeout_seconds: float = 10.0
    assignment_max_attempts: Optional[int] = None
    base_url: str = 'http://localhost:5000'
    cors_origins: str = ''
    otel_enabled: bool = True
    service_version: str = '1.0.0'

    def __post_init__(self):
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, got '{self.storage_backend}'"
            )

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            environment=os.getenv('ENVIRONMENT', 'development'),
            mongodb_uri=os.getenv('MONGODB_URI', cls.mongodb_uri),
            mongodb_database=os.getenv('MONGODB_DATABASE', cls.mongodb_database),
            mongodb_max_pool_size=int(os.getenv('MONGODB_MAX_POOL_SIZE', '10')),
            mongodb_server_selection_timeout_ms=int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000')),
            storage_backend=os.getenv('STORAGE_BACKEND', 'mongodb').lower(),
            geocoder_url=os.getenv('GEOCODER_URL', cls.geocoder_url),
            geocoder_user_agent=os.getenv('GEOCODER_USER_AGENT', cls.geocoder_user_agent),
            geocoder_timeout_seconds=float(os.getenv('GEOCODER_TIMEOUT_SECONDS', '10')),
            assignment_max_attempts=_env_optional_int('ASSIGNMENT_MAX_ATTEMPTS'),
            base_url=os.getenv('BASE_URL', cls.base_url),
            cors_origins=os.getenv('CORS_ORIGINS', ''),
            otel_enabled=_env_bool('OTEL_ENABLED', 'true'),
            service_version=os.getenv('SERVICE_VERSION', '1.0.0')
        )

    def to_flask_config(self) -> Dict[str, Any]:
        """Upper-cased keys for app.config."""
        config = {key.upper(): value for key, value in asdict(self).items()}
        config['DEBUG'] = self.environment == 'development'
        return config
