"""Record query gateway: declarative JSON filters compiled to parameterized, paginated SQL."""

__version__ = "2.3.0"
