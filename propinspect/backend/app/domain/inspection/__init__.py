# backend/app/domain/inspection/__init__.py
from .errors import (
    AuthorizationDenied,
    DocumentStructureError,
    InspectionEngineError,
    PreconditionFailed,
    RecordNotFound,
    RenderingFailed,
    ValidationFailed,
)
from .prefill import generate_prefill
from .report_normalizer import ReportContext, normalize_report, resolve_source_shape
from .scoring import ScoringRules, calculate_derived, compute_derived, quality_grade
from .stats import inspection_stats
from .taxonomy import IssueCatalog, Taxonomy, build_issue_catalog, default_taxonomy
from .validation import ValidationResult, validate_document

__all__ = [
    "AuthorizationDenied",
    "DocumentStructureError",
    "InspectionEngineError",
    "PreconditionFailed",
    "RecordNotFound",
    "RenderingFailed",
    "ValidationFailed",
    "generate_prefill",
    "ReportContext",
    "normalize_report",
    "resolve_source_shape",
    "ScoringRules",
    "calculate_derived",
    "compute_derived",
    "quality_grade",
    "inspection_stats",
    "IssueCatalog",
    "Taxonomy",
    "build_issue_catalog",
    "default_taxonomy",
    "ValidationResult",
    "validate_document",
]
