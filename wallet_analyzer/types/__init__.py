from .base import CamelModel
from .history import Direction, HistoryMeta, WalletHistory, WalletTransaction
from .portfolio import (
    AnalysisInsight,
    AnalysisMeta,
    AnalysisSummary,
    Holding,
    PortfolioPoint,
    RiskLevel,
    WalletAnalysis,
)
from .raw import RawBalance, RawTransaction

__all__ = [
    "CamelModel",
    "Direction",
    "HistoryMeta",
    "WalletHistory",
    "WalletTransaction",
    "AnalysisInsight",
    "AnalysisMeta",
    "AnalysisSummary",
    "Holding",
    "PortfolioPoint",
    "RiskLevel",
    "WalletAnalysis",
    "RawBalance",
    "RawTransaction",
]
