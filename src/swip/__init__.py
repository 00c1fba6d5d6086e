"""SWIP — on-device emotion inference and wellness-impact scoring."""

__version__ = "0.1.0"
