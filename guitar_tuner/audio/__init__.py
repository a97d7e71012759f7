"""Audio capture and sample buffering."""
