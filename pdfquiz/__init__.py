"""Question generation and deduplication pipeline for certification-exam PDFs."""

__version__ = "0.1.0"
