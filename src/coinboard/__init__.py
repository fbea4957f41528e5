# src/coinboard/__init__.py
"""Coinboard: a cryptocurrency price, chart and halving dashboard.

The package is a thin client over public exchange REST APIs. It resolves
user-facing crypto/currency codes to exchange trading pairs, falls back to a
secondary data source when the primary one fails, and prepares the numbers
for display.

Key sub-packages:
- `adapters`: REST price sources (Binance primary, CoinCap secondary).
- `ui`: The PySide6 desktop dashboard.
- `utils`: Shared utilities like the rate limiter and timestamp helpers.
"""

import importlib.metadata

try:
    __version__: str = importlib.metadata.version("coinboard")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0-dev"
