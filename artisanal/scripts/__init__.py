# artisanal/scripts/__init__.py
# SPDX-License-Identifier: Apache-2.0
"""Operational command-line tools."""
