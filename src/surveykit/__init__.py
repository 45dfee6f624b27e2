"""SurveyKit: survey storage, audience segments and per-person survey eligibility.

Surveys, their triggers, languages and targeting segments live in a
relational store.  Derived reads are cached under entity tags and
invalidated whenever an underlying entity changes.
"""

from surveykit._version import __version__

# Core entry point
from surveykit.service import SurveyService

# Configuration
from surveykit.models.config import ITEMS_PER_PAGE, SERVICES_REVALIDATION_INTERVAL, ServiceConfig

# Survey models
from surveykit.models.survey import (
    DisplayOption,
    Language,
    Survey,
    SurveyFilterCriteria,
    SurveyInput,
    SurveyLanguage,
    SurveyLanguageInput,
    SurveyStatus,
    SurveyType,
    resolve_status,
)
from surveykit.models.legacy import LegacySurvey

# Segments and filters
from surveykit.models.segment import Segment, SegmentCreateInput, SegmentUpdateInput
from surveykit.models.filters import (
    ActionFilter,
    AndFilter,
    AttributeFilter,
    DeviceFilter,
    FilterNode,
    OrFilter,
    PersonFilter,
    parse_filters,
)
from surveykit.segments import EvaluationMode, LegacyMode, SegmentContext, StructuredMode, evaluate

# People and environments
from surveykit.models.person import Action, Display, Person, Response
from surveykit.models.environment import ActionClass, Environment, Product

# Cache
from surveykit.cache import InMemoryCacheBackend, ResultCache

# Migration
from surveykit.operations.migration import MigrationSummary

# Exceptions
from surveykit.exceptions import (
    ConfigurationError,
    DatabaseError,
    InvalidInputError,
    ResourceNotFoundError,
    SurveyKitError,
)

__all__ = [
    "__version__",
    "SurveyService",
    # Config
    "ITEMS_PER_PAGE",
    "SERVICES_REVALIDATION_INTERVAL",
    "ServiceConfig",
    # Surveys
    "DisplayOption",
    "Language",
    "LegacySurvey",
    "Survey",
    "SurveyFilterCriteria",
    "SurveyInput",
    "SurveyLanguage",
    "SurveyLanguageInput",
    "SurveyStatus",
    "SurveyType",
    "resolve_status",
    # Segments
    "ActionFilter",
    "AndFilter",
    "AttributeFilter",
    "DeviceFilter",
    "EvaluationMode",
    "FilterNode",
    "LegacyMode",
    "OrFilter",
    "PersonFilter",
    "Segment",
    "SegmentContext",
    "SegmentCreateInput",
    "SegmentUpdateInput",
    "StructuredMode",
    "evaluate",
    "parse_filters",
    # People and environments
    "Action",
    "ActionClass",
    "Display",
    "Environment",
    "Person",
    "Product",
    "Response",
    # Cache
    "InMemoryCacheBackend",
    "ResultCache",
    # Migration
    "MigrationSummary",
    # Exceptions
    "ConfigurationError",
    "DatabaseError",
    "InvalidInputError",
    "ResourceNotFoundError",
    "SurveyKitError",
]
