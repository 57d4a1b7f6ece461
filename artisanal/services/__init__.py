# artisanal/services/__init__.py
# SPDX-License-Identifier: Apache-2.0
"""Wallet, ledger, collection, visibility, content and mutation services."""
