"""JSON Schema generation for handler input models."""

from inferable.kernel.schema.generator import SchemaGenerator

__all__ = ["SchemaGenerator"]
