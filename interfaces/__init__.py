"""Abstract interfaces shared by infrastructure implementations and test fakes."""
