from .account_directory import InMemoryAccountDirectory, PostgresAccountDirectory
from .audit_sink import AuditSink, BufferedAuditSink, DirectAuditSink
from .clock import SystemClock
from .purge import PostgresAccountPurger, RecordingPurger, TimeoutPurgeExecutor

__all__ = [
    "AuditSink",
    "BufferedAuditSink",
    "DirectAuditSink",
    "InMemoryAccountDirectory",
    "PostgresAccountDirectory",
    "PostgresAccountPurger",
    "RecordingPurger",
    "SystemClock",
    "TimeoutPurgeExecutor",
]
