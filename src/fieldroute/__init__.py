"""FieldRoute: daily job scheduling and route ordering for field-service crews."""

__version__ = "0.1.0"
