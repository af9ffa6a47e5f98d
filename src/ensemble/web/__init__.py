"""HTTP calling layer for Ensemble."""
