"""taskfleet: file-coordinated task orchestration for a small fleet of agent workers."""

__version__ = "0.1.0"
