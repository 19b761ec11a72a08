from enum import Enum


class AttemptStatusEnum(str, Enum):
    ACTIVE = "active"
    SUBMITTED = "submitted"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

TERMINAL_STATUSES = frozenset({
    AttemptStatusEnum.SUBMITTED,
    AttemptStatusEnum.EXPIRED,
    AttemptStatusEnum.CANCELLED,
})

class QuestionTypeEnum(str, Enum):
    SINGLE = "single"
    MULTI = "multi"
    TEXT = "text"
    CODE = "code"

AUTO_GRADED_TYPES = frozenset({QuestionTypeEnum.SINGLE, QuestionTypeEnum.MULTI})
MANUALLY_GRADED_TYPES = frozenset({QuestionTypeEnum.TEXT, QuestionTypeEnum.CODE})

class RevealScoreModeEnum(str, Enum):
    NEVER = "never"
    AFTER_SUBMIT = "after_submit"
    ALWAYS = "always"

class ParticipantKindEnum(str, Enum):
    USER = "user"
    GUEST = "guest"

class ExportFormatEnum(str, Enum):
    CSV = "csv"
    XLSX = "xlsx"

FINGERPRINT_HEADER = "X-Attempt-Fingerprint"
FINGERPRINT_COOKIE = "attempt_fingerprint"
DEFAULT_QUESTION_WEIGHT = 1.0
