"""latticegw: dependency resolution and reconcile triggering for a Gateway API controller."""

__version__ = "0.1.0"
