"""Free-function adapters, one module per OpenCV area."""
