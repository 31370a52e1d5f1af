"""Export renderers."""
