"""GlowCheck: multi-angle facial analysis service."""
