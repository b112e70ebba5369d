from .dedup import IngestionGate
from .distribution import compute_distribution, rescale_distribution
from .normalization import ContentNormalizer, normalize_text
from .pipeline import QuestionPipeline
from .sanitizer import sanitize
from .strategies import AIQuestionStrategy, HeuristicStrategy

__all__ = [
    "IngestionGate",
    "compute_distribution",
    "rescale_distribution",
    "ContentNormalizer",
    "normalize_text",
    "QuestionPipeline",
    "sanitize",
    "AIQuestionStrategy",
    "HeuristicStrategy",
]
