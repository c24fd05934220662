"""Extraction, decryption and scope spreading of Octopus Deploy sensitive values."""

__version__ = "0.1.0"
