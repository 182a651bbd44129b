"""Resource adapters, one per AWS resource type."""
