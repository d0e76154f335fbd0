"""Course content and learner progress engine."""

__version__ = "0.1.0"
