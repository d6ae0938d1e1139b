"""mlsync — keep a version-controlled masterlist up to date and parseable."""

__version__ = "0.1.0"
