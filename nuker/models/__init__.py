"""Data models for resources, rule configuration, and enforcement results."""
