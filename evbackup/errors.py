"""
Error types raised by the backup / restore tooling.

Fatal:     SessionError, ArchiveOpenError  -> run aborts
Voluntary: OperatorDecline                 -> run aborts, nothing changed
Per type:  ValidationError, EntityMissing  -> entity type dropped from restore
Per item:  RemoteOperationError, NormalizationRuleParseError -> reported, loop continues
"""

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_DECLINED = 2


class EvBackupError(Exception):
    pass


class SessionError(EvBackupError):
    """Authentication or session setup against the tenant failed."""


class ArchiveOpenError(EvBackupError):
    """Path is not a readable zip container."""


class ValidationError(EvBackupError):
    def __init__(self, entity_name: str, reason: str):
        super().__init__(f"{entity_name}: {reason}")
        self.entity_name = entity_name
        self.reason = reason


class EntityMissing(ValidationError):
    def __init__(self, entity_name: str):
        super().__init__(entity_name, f"{entity_name}.txt not found in archive")


class NormalizationRuleParseError(EvBackupError):
    def __init__(self, blob: str, reason: str):
        super().__init__(f"cannot parse normalization rule ({reason}): {blob!r}")
        self.blob = blob
        self.reason = reason


class OperatorDecline(EvBackupError):
    pass


class RemoteOperationError(RuntimeError):
    """A call against the admin API returned a non-success status."""

    def __init__(self, method: str, url: str, status: int, body: str = ""):
        super().__init__(f"{method} {url} -> {status} {body}".rstrip())
        self.method = method
        self.url = url
        self.status = status
        self.body = body
