"""reviewbot - GitHub App backend for automated AI pull request reviews."""

__version__ = "0.1.0"
