"""Per-identity leaky bucket admission control."""
