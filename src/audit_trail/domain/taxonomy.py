"""Audit taxonomy: actions, severities, categories and access types."""

from enum import StrEnum


class AuditAction(StrEnum):
    """Kinds of discrete action recorded in the audit log."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LOGIN = "login"
    LOGOUT = "logout"
    EXPORT = "export"
    IMPORT = "import"
    PERMISSION_DENIED = "permission_denied"
    SCHEMA_CHANGE = "schema_change"
    VERSION_CHANGE = "version_change"
    CUSTOM = "custom"


class Severity(StrEnum):
    """Ordinal classification of how serious an event is."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class Category(StrEnum):
    """Coarse classification used for filtering."""

    DATA = "data"
    SECURITY = "security"
    SYSTEM = "system"
    COMPLIANCE = "compliance"


class AccessType(StrEnum):
    """Read operations considered sensitive enough to log."""

    LIST = "list"
    DETAIL = "detail"
    EXPORT = "export"
    SEARCH = "search"


class SecurityEventType(StrEnum):
    """Authentication and authorization occurrences."""

    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILURE = "login_failure"
    LOGOUT = "logout"
    PERMISSION_DENIED = "permission_denied"
    SESSION_ANOMALY = "session_anomaly"
    PASSWORD_CHANGE = "password_change"
    MFA_CHALLENGE = "mfa_challenge"


class RowOutcome(StrEnum):
    """Result of processing one row of a bulk operation."""

    SUCCESS = "success"
    FAILURE = "failure"


CATEGORY_BY_ACTION: dict[AuditAction, Category] = {
    AuditAction.CREATE: Category.DATA,
    AuditAction.UPDATE: Category.DATA,
    AuditAction.DELETE: Category.DATA,
    AuditAction.IMPORT: Category.DATA,
    AuditAction.CUSTOM: Category.DATA,
    AuditAction.LOGIN: Category.SECURITY,
    AuditAction.LOGOUT: Category.SECURITY,
    AuditAction.PERMISSION_DENIED: Category.SECURITY,
    AuditAction.SCHEMA_CHANGE: Category.SYSTEM,
    AuditAction.VERSION_CHANGE: Category.SYSTEM,
    AuditAction.EXPORT: Category.COMPLIANCE,
}

DEFAULT_SEVERITY: dict[AuditAction, Severity] = {
    AuditAction.DELETE: Severity.WARNING,
}

# Applied when the caller marks an event as security relevant.
SECURITY_SEVERITY: dict[AuditAction, Severity] = {
    AuditAction.LOGIN: Severity.WARNING,
    AuditAction.LOGOUT: Severity.INFO,
    AuditAction.PERMISSION_DENIED: Severity.CRITICAL,
    AuditAction.DELETE: Severity.CRITICAL,
    AuditAction.EXPORT: Severity.WARNING,
}

SECURITY_EVENT_SEVERITY: dict[SecurityEventType, Severity] = {
    SecurityEventType.LOGIN_SUCCESS: Severity.INFO,
    SecurityEventType.LOGIN_FAILURE: Severity.WARNING,
    SecurityEventType.LOGOUT: Severity.INFO,
    SecurityEventType.PERMISSION_DENIED: Severity.WARNING,
    SecurityEventType.SESSION_ANOMALY: Severity.CRITICAL,
    SecurityEventType.PASSWORD_CHANGE: Severity.INFO,
    SecurityEventType.MFA_CHALLENGE: Severity.INFO,
}
