"""Services package exports."""

from school_portal.services.account_store import AccountStore
from school_portal.services.auth_service import AuthService
from school_portal.services.email_service import EmailService
from school_portal.services.logging_service import configure_logging, get_logger
from school_portal.services.provisioning_service import BatchProvisioner
from school_portal.services.token_service import TokenService

__all__ = [
    "AccountStore",
    "AuthService",
    "BatchProvisioner",
    "EmailService",
    "TokenService",
    "configure_logging",
    "get_logger",
]
