# School portal component system
# Pure Python components for escaped HTML generation

from .base import Component, Table
from .layout import Layout
from .navigation import Navigation
from .feature_locked import FeatureLocked, Loading

__all__ = [
    "Component",
    "Table",
    "Layout",
    "Navigation",
    "FeatureLocked",
    "Loading",
]
