from __future__ import annotations


class PipelineError(Exception):
    """Base class for failures raised by pipeline collaborators."""


class ExtractionError(PipelineError):
    """The document bytes could not be turned into text."""


class GenerationError(PipelineError):
    """A generation provider failed at the transport or auth level."""


class StoreError(PipelineError):
    """A document or question store operation failed."""


__all__ = ["PipelineError", "ExtractionError", "GenerationError", "StoreError"]
