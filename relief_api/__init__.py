# SPDX-License-Identifier: Apache-2.0

"""
Relief Camps API - refugee registration and nearest-camp assignment.
"""

__version__ = "1.0.0"
