"""Robot models read from URDF and YAML descriptions: bodies, joints, limits and geometry."""

__version__ = "0.1.0"

__all__ = ["body", "joint", "model", "urdf", "yaml_format"]