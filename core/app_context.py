import logging
from dataclasses import dataclass

from core.config_loader import AppConfig, DataConfig, LlmConfig
from core.dataset import DatasetLoadError, FirmDataset, load_dataset
from core.llm.interfaces import LLMProvider
from core.llm.openai_service import OpenAIService
from core.quota import UsageQuota
from core.scorer import RankingEngine

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Application context container that holds all wired dependencies.

    This eliminates duplicate wiring code and provides a single source
    of truth for service instantiation. The dataset is loaded once here
    and shared read-only by every request.
    """
    config: AppConfig
    dataset: FirmDataset
    engine: RankingEngine
    llm: LLMProvider
    quota: UsageQuota

    @classmethod
    def build(cls, config: AppConfig) -> "AppContext":
        """Build an AppContext from config.

        Args:
            config: Loaded application configuration

        Returns:
            Fully wired AppContext instance
        """
        return cls(
            config=config,
            dataset=cls._load_dataset(config.data),
            engine=RankingEngine(config.scoring),
            llm=cls._build_ai_service(config.llm),
            quota=UsageQuota.from_config(config.quota),
        )

    @staticmethod
    def _load_dataset(data_config: DataConfig) -> FirmDataset:
        """Load the firm dataset; an unloadable dataset becomes an empty one.

        Requests against an empty dataset fail with a "no data" error
        instead of the process refusing to start.
        """
        try:
            return load_dataset(data_config)
        except DatasetLoadError as e:
            logger.error(f"Firm dataset unavailable: {e}")
            return FirmDataset()

    @staticmethod
    def _build_ai_service(llm_config: LlmConfig) -> OpenAIService:
        """Build OpenAI service from LLM configuration."""
        return OpenAIService.from_config(llm_config)
