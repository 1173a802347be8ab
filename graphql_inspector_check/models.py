from enum import StrEnum


class CheckConclusion(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"


class CriticalityLevel(StrEnum):
    BREAKING = "breaking"
    DANGEROUS = "dangerous"
    NON_BREAKING = "non-breaking"


class SchemaFormat(StrEnum):
    SDL = "sdl"
    INTROSPECTION_JSON = "introspection-json"


class ReferenceKind(StrEnum):
    VERSIONED_FILE = "versioned-file"
    LIVE_ENDPOINT = "live-endpoint"


class AnnotationLevel(StrEnum):
    FAILURE = "failure"
    WARNING = "warning"
    NOTICE = "notice"


class SchemaSide(StrEnum):
    OLD = "old"
    NEW = "new"


_ANNOTATION_LEVELS: dict[CriticalityLevel, AnnotationLevel] = {
    CriticalityLevel.BREAKING: AnnotationLevel.FAILURE,
    CriticalityLevel.DANGEROUS: AnnotationLevel.WARNING,
    CriticalityLevel.NON_BREAKING: AnnotationLevel.NOTICE,
}


def get_annotation_level(level: CriticalityLevel) -> AnnotationLevel:
    """
    Get the check-run annotation level for a change criticality.

    Args:
        level: Criticality of the change.

    Returns:
        AnnotationLevel enum value.
    """
    return _ANNOTATION_LEVELS[level]
