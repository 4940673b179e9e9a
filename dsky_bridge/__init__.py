"""Bridge between ReEntry DSKY telemetry and physical DSKY replicas."""

__all__ = ["__version__"]

__version__ = "0.1.0"
