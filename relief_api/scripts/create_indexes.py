#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Create the MongoDB indexes for camps and refugees.

The unique camp name index backs duplicate-name rejection, and the
status/occupancy index serves the eligible-camp query of every assignment.

Usage: python -m relief_api.scripts.create_indexes
"""

import sys
import logging

from ..config import Settings
from ..services.mongodb import MongoDBService, CAMPS, REFUGEES

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main():
    """Create MongoDB indexes and list what each collection now has."""
    settings = Settings.from_env()
    mongodb_service = MongoDBService.from_settings(settings)
    try:
        health = mongodb_service.health_check()
        if health['status'] != 'healthy':
            logger.error(f"MongoDB is not healthy: {health}")
            sys.exit(1)

        logger.info(f"Connected to MongoDB {health['version']} - Database: {health['database']}")
        mongodb_service.create_indexes()

        for name in (CAMPS, REFUGEES):
            indexes = sorted(mongodb_service.get_collection(name).index_information())
            logger.info(f"{name}: {', '.join(indexes)}")
    finally:
        mongodb_service.close_connection()


if __name__ == "__main__":
    main()
