# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for the relief camps platform.

This package contains pure business logic functions with no side effects:
distance and ranking, camp status derivation, eligibility and validation
rules, and the error taxonomy.
"""
