from .audit_log import PostgresAuditLogRepository
from .deletion_request import PostgresDeletionRequestRepository

__all__ = ["PostgresAuditLogRepository", "PostgresDeletionRequestRepository"]
