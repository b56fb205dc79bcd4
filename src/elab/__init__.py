"""elab — session/protocol client for eLab telemetry masters."""

__version__ = "0.1.0"
