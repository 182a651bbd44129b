"""AWS Resource Nuker - policy-driven cleanup of AWS resources."""

__version__ = "0.1.0"
