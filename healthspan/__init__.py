"""Health metric aggregation and lifespan impact.

This package contains the aggregation core and its domain models,
isolated from concrete data sources for easy testing and reasoning.
"""
