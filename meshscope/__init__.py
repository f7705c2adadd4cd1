"""meshscope: service-mesh dependency and resilience analysis."""

__version__ = "0.1.0"
