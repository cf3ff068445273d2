"""Console (rich) user interface."""
