"""Market data module."""

from .connector import ListingsConnector, CoinMarketCapConnector
from .credentials import (
    CredentialProvider, InMemoryCredentialProvider, EnvCredentialProvider,
    FileCredentialProvider, ChainedCredentialProvider,
)
from .normalizer import normalize, create_dataset
from .statistics import compute_metrics, z_score

__all__ = [
    "ListingsConnector",
    "CoinMarketCapConnector",
    "CredentialProvider",
    "InMemoryCredentialProvider",
    "EnvCredentialProvider",
    "FileCredentialProvider",
    "ChainedCredentialProvider",
    "normalize",
    "create_dataset",
    "compute_metrics",
    "z_score",
]
