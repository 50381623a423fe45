from .deletion import DeletionAdminService, DeletionRequestManager

__all__ = ["DeletionAdminService", "DeletionRequestManager"]
