"""Core mathematics for the pick settlement engine.

This package contains pure building blocks:

- ``odds_math``: American ↔ decimal conversion, odds validation, win profit

Nothing in this package imports from ``settlement.services`` or ``settlement.models``.
All modules are side-effect-free and unit-testable in isolation.
"""
