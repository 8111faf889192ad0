"""Pydantic schemas for request/response models.

All schemas are re-exported here for convenient imports.
"""

from cofish.schemas.catches import (
    AnalysisIn,
    AwardOut,
    CatchOut,
    CreateCatchRequest,
    KarmaDistributionOut,
    RecordAnalysisRequest,
    UniquenessOut,
    UniquenessRequest,
)
from cofish.schemas.ledger import LedgerEntryOut, LedgerOut, ReconciliationReport
from cofish.schemas.target_zones import (
    ActivityBucket,
    BoundingBoxOut,
    NearbyCatchOut,
    ObfuscatedCircleOut,
    OverlayOut,
    OverlayRequest,
    PreviewOut,
    PreviewRequest,
    PurchaseOut,
    PurchaseRequest,
    ZoneTier,
)
from cofish.schemas.users import UserOut

__all__ = [
    # Catches
    "AnalysisIn",
    "AwardOut",
    "CatchOut",
    "CreateCatchRequest",
    "KarmaDistributionOut",
    "RecordAnalysisRequest",
    "UniquenessOut",
    "UniquenessRequest",
    # Ledger
    "LedgerEntryOut",
    "LedgerOut",
    "ReconciliationReport",
    # TargetZones
    "ActivityBucket",
    "BoundingBoxOut",
    "NearbyCatchOut",
    "ObfuscatedCircleOut",
    "OverlayOut",
    "OverlayRequest",
    "PreviewOut",
    "PreviewRequest",
    "PurchaseOut",
    "PurchaseRequest",
    "ZoneTier",
    # Users
    "UserOut",
]
