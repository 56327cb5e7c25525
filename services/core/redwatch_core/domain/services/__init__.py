"""Domain services for Redwatch."""

from redwatch_core.domain.services.credentials import CredentialService
from redwatch_core.domain.services.enrichment import (
    EnrichmentResult,
    EnrichmentStatus,
    MentionEnrichmentService,
)
from redwatch_core.domain.services.keyword_match import keyword_matches, rule_matches
from redwatch_core.domain.services.monitoring import KeywordMonitorService, MonitorSummary
from redwatch_core.domain.services.personas import PersonaService
from redwatch_core.domain.services.token_manager import TokenManager

__all__ = [
    "CredentialService",
    "EnrichmentResult",
    "EnrichmentStatus",
    "KeywordMonitorService",
    "MentionEnrichmentService",
    "MonitorSummary",
    "PersonaService",
    "TokenManager",
    "keyword_matches",
    "rule_matches",
]
