"""Dataset Module - normalized firm records and the read-only dataset handle."""
from core.dataset.models import (
    BillingProfile,
    ClientEngagement,
    Committee,
    CommitteeTie,
    Firm,
    FirmDataset,
    IssueActivity,
    Lobbyist,
    MatchQuery,
)
from core.dataset.loader import DatasetLoadError, build_dataset, load_dataset, normalize_firm

__all__ = [
    'BillingProfile', 'ClientEngagement', 'Committee', 'CommitteeTie', 'Firm',
    'FirmDataset', 'IssueActivity', 'Lobbyist', 'MatchQuery',
    'DatasetLoadError', 'build_dataset', 'load_dataset', 'normalize_firm',
]
