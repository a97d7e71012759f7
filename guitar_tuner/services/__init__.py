"""Services that drive the detection loop."""
