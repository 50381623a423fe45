from .audit_log import InMemoryAuditLogRepository
from .deletion_request import InMemoryDeletionRequestRepository

__all__ = ["InMemoryAuditLogRepository", "InMemoryDeletionRequestRepository"]
