# artisanal/core/__init__.py
# SPDX-License-Identifier: Apache-2.0
"""Configuration, constants, error taxonomy and record types."""
