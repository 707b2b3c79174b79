"""Python half of the sample project."""
