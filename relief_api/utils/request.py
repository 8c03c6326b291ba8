# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request utilities for extracting and validating request data.
"""

from flask import request
from pydantic import BaseModel, ValidationError
from typing import Dict, Any, Optional, Type, TypeVar
import logging

from ..domain.errors import InvalidInput

logger = logging.getLogger(__name__)

M = TypeVar('M', bound=BaseModel)


class RequestParser:
    """Utility for parsing and extracting request data."""

    @staticmethod
    def get_pagination_params(
        default_page: int = 1,
        default_page_size: int = 20,
        max_page_size: int = 100
    ) -> Dict[str, int]:
        """
        Extract pagination parameters from request.

        Returns:
            Dictionary with page and page_size
        """
        try:
            page = max(1, int(request.args.get('page', default_page)))
        except (ValueError, TypeError):
            page = default_page

        try:
            page_size = int(request.args.get('page_size', default_page_size))
            page_size = max(1, min(page_size, max_page_size))
        except (ValueError, TypeError):
            page_size = default_page_size

        return {'page': page, 'page_size': page_size}

    @staticmethod
    def get_bool_arg(name: str, default: bool = False) -> bool:
        value = request.args.get(name)
        if value is None:
            return default
        return value.lower() in ['true', '1', 'yes', 'on']

    @staticmethod
    def parse_json_body(required: bool = True) -> Optional[Dict[str, Any]]:
        """
        Parse JSON request body.

        Raises:
            InvalidInput: If JSON is required but missing or invalid
        """
        data = request.get_json(silent=True)
        if data is None:
            if required:
                raise InvalidInput("Request body must be a JSON object")
            return None
        if not isinstance(data, dict):
            raise InvalidInput("Request body must be a JSON object")
        return data

    @classmethod
    def parse_model(cls, model: Type[M], required: bool = True) -> M:
        """
        Parse and validate the JSON body against a request model.

        Raises:
            InvalidInput: body missing or failing validation, with per-field details
        """
        data = cls.parse_json_body(required=required) or {}
        try:
            return model.model_validate(data)
        except ValidationError as e:
            details = [
                {"field": ".".join(str(p) for p in err["loc"]) or "body", "message": err["msg"]}
                for err in e.errors()
            ]
            logger.debug(f"Validation failed for {model.__name__}: {details}")
            raise InvalidInput(f"Invalid {model.__name__} payload", details=details)
