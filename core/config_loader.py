import yaml
import os
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, model_validator


class ScoringMode(str, Enum):
    """Which scoring formula the ranking engine applies.

    The two modes are not interchangeable: percentile scores are relative to
    the loaded population, rubric scores are absolute point buckets.
    """
    PERCENTILE = "percentile"
    RUBRIC = "rubric"


WEIGHT_SUM_TOLERANCE = 1e-6


def _check_weight_sum(name: str, weights: Dict[str, float]) -> None:
    total = sum(weights.values())
    if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
        raise ValueError(f"{name} weights must sum to 1.0 (got {total:.4f})")
    if any(w < 0 for w in weights.values()):
        raise ValueError(f"{name} weights must be non-negative")


class DataConfig(BaseModel):
    """Static dataset locations (relative paths resolve against data_dir)."""
    data_dir: str = "data"
    firms_file: str = "firms.json"
    issue_committee_map_file: str = "issue-committee-map.json"
    issue_codes_file: str = "issue-codes.json"
    scenarios_file: str = "example-scenarios.json"

    def resolve(self, filename: str) -> str:
        if os.path.isabs(filename):
            return filename
        data_dir = self.data_dir
        if not os.path.isabs(data_dir):
            project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
            data_dir = os.path.join(project_root, data_dir)
        return os.path.join(data_dir, filename)


class LlmConfig(BaseModel):
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    max_tokens: int = 4096
    temperature: float = 0.7
    request_timeout_seconds: float = 120.0


class IssueWeights(BaseModel):
    filing_count: float = 0.45
    issue_position: float = 0.30
    additional_match: float = 0.15
    specialization: float = 0.10

    @model_validator(mode="after")
    def _sum_to_one(self):
        _check_weight_sum("issue", self.model_dump())
        return self


class ExperienceWeights(BaseModel):
    covered_officials: float = 0.30
    committee_signal: float = 0.30
    committee_overlap: float = 0.15
    client_count: float = 0.15
    team_size: float = 0.10

    @model_validator(mode="after")
    def _sum_to_one(self):
        _check_weight_sum("experience", self.model_dump())
        return self


class CompositeWeights(BaseModel):
    issue_alignment: float = 0.45
    experience_depth: float = 0.35
    cost_fit: float = 0.20

    @model_validator(mode="after")
    def _sum_to_one(self):
        _check_weight_sum("composite", self.model_dump())
        return self


class ScoringConfig(BaseModel):
    """
    Configuration for the RankingEngine.

    The constants below were tuned by hand against the original dataset and
    are kept as named, overridable values rather than derived ones.
    """
    mode: ScoringMode = ScoringMode.PERCENTILE
    top_k: int = Field(default=3, ge=1, le=50)

    issue_weights: IssueWeights = Field(default_factory=IssueWeights)
    experience_weights: ExperienceWeights = Field(default_factory=ExperienceWeights)
    composite_weights: CompositeWeights = Field(default_factory=CompositeWeights)

    # Raw metric defaults
    issue_position_not_found: int = 99
    default_issue_count: int = 20  # fewer issues = more specialized
    default_additional_match_rate: float = 0.5  # no secondary issues requested
    neutral_cost_distance: float = 50.0
    filings_per_month_divisor: float = 3.0  # LD-2 filings are quarterly

    # Rubric mode cost buckets
    rubric_cost_unknown: int = 50
    rubric_cost_in_range: int = 90
    rubric_cost_near_range: int = 70
    rubric_cost_far_range: int = 50
    rubric_cost_outside: int = 30

    # Excerpt sizes for narrative prompts
    max_personnel_excerpt: int = 4
    max_client_excerpt: int = 8
    max_committee_excerpt: int = 5


class GenerationConfig(BaseModel):
    """Staged memo generation settings."""
    stage_timeout_seconds: float = 60.0
    decision_timeout_seconds: float = 300.0
    checkpoint_after_stage: int = 3
    memo_max_tokens: int = 4000
    max_lobbyists_in_profile: int = 25
    max_clients_in_profile: int = 10


class QuotaConfig(BaseModel):
    """Demo usage quota for memo generation."""
    enabled: bool = True
    limit: int = 20
    redis_url: Optional[str] = None
    key_prefix: str = "lobbymatch:usage"
    usage_log_max_entries: int = 100
    usage_log_key: Optional[str] = None  # required to read the usage log; unset disables it


class WebConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080


class AppConfig(BaseModel):
    data: DataConfig = Field(default_factory=DataConfig)
    llm: LlmConfig = Field(default_factory=LlmConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    quota: QuotaConfig = Field(default_factory=QuotaConfig)
    web: WebConfig = Field(default_factory=WebConfig)


def _set_nested(data: Dict[str, Any], section: str, key: str, value: Any) -> None:
    if section not in data or data[section] is None:
        data[section] = {}
    data[section][key] = value


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides on top of the YAML values."""
    env_map = {
        "OPENAI_API_KEY": ("llm", "api_key", str),
        "LLM_BASE_URL": ("llm", "base_url", str),
        "LLM_MODEL": ("llm", "model", str),
        "REDIS_URL": ("quota", "redis_url", str),
        "USAGE_LOG_KEY": ("quota", "usage_log_key", str),
        "LOBBYMATCH_DATA_DIR": ("data", "data_dir", str),
        "SCORING_MODE": ("scoring", "mode", str),
        "WEB_HOST": ("web", "host", str),
        "WEB_PORT": ("web", "port", int),
    }
    for env_var, (section, key, cast) in env_map.items():
        value = os.environ.get(env_var)
        if value:
            _set_nested(data, section, key, cast(value))
    return data


def load_config(config_path: str = "config.yaml") -> AppConfig:
    # If not found at relative path (e.g. running from a subdirectory), try next to the project root
    if not os.path.exists(config_path):
        base_dir = os.path.dirname(os.path.abspath(__file__))
        config_path = os.path.join(base_dir, "..", "config.yaml")

    data: Dict[str, Any] = {}
    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}

    data = _apply_env_overrides(data)
    return AppConfig(**data)
