"""Base class for post sifters.

A sifter turns one kind of post-derived input into a more structured
judgment:
- KeywordPreFilter: post text -> KeywordSignal
- DisasterClassifier: post + KeywordSignal -> ClassificationResult

The pipeline calls the typed methods (analyze, classify) directly.
sift()/process() is the dict-in/dict-out surface used by the CLI and
ad-hoc batch runs, where one bad record must not stop the rest.
"""

from abc import ABC, abstractmethod

from loguru import logger


class BaseSifter(ABC):
    """
    Abstract base for post sifters.

    Attributes:
        name: Sifter name, bound into every log record as the component
        description: One-line purpose
        logger: Loguru logger bound with the sifter's component name
        processed_count: Records sifted successfully through process()
        error_count: Records whose sift() raised
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self.logger = logger.bind(component=name)
        self.processed_count: int = 0
        self.error_count: int = 0

    @abstractmethod
    async def sift(self, content: dict) -> list[dict]:
        """
        Sift one record.

        Args:
            content: KeywordPreFilter takes 'title'/'body' (or 'text');
                DisasterClassifier takes 'post' (a RawPost dict)

        Returns:
            List of result dicts (model_dump of the sifter's output model)
        """

    async def process(self, input_data: dict) -> dict:
        """
        Run sift() on input_data['content'], recording the outcome.

        Returns:
            {"success": True, "results": [...], "count": n} or
            {"success": False, "error": "...", "results": []}
        """
        try:
            results = await self.sift(input_data.get("content", {}))
        except Exception as e:
            self.error_count += 1
            self.logger.opt(exception=True).error("Sift failed: {error}", error=str(e))
            return {"success": False, "error": str(e), "results": []}

        self.processed_count += 1
        return {"success": True, "results": results, "count": len(results)}

    def get_stats(self) -> dict:
        total = self.processed_count + self.error_count
        return {
            "processed_count": self.processed_count,
            "error_count": self.error_count,
            "error_rate": self.error_count / total if total else 0.0,
        }
