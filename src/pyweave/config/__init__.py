"""pyweave configuration property classes."""
