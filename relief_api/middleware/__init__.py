# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing: CORS and error rendering.
"""
