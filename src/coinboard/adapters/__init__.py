# src/coinboard/adapters/__init__.py
"""This package contains the REST price sources.

Each source is a self-contained module responsible for mapping user-facing
crypto and currency codes to a provider's identifiers, calling its public
REST API, and normalizing the responses into the shared data models.

All sources inherit from the `PriceSource` abstract base class defined
in `coinboard.adapters.base`.
"""
