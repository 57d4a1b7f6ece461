# artisanal/__init__.py
# SPDX-License-Identifier: Apache-2.0
"""Client-side orchestration for the artisanal goods provenance marketplace."""

__version__ = "0.1.0"
