"""LearnPath API: passwordless e-learning backend."""

__version__ = "1.0.0"
