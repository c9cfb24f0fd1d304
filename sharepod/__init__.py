"""SharePod: revocable, limited share links for uploaded files."""

__version__ = "0.1.0"
