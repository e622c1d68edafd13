"""Quran Gate Academy schema plan.

New collections (learning materials, session reports), attributes added to existing
collections (users, students, class_sessions) and the learning materials bucket.
"""

from __future__ import annotations

from typing import Any

from appwrite_setup.models.schema_plan import (
    AttributeAddition,
    AttributeDefinition,
    BucketDefinition,
    CollectionDefinition,
    IndexDefinition,
    Permission,
    SchemaPlan,
)

LEARNING_MATERIALS = "learning_materials"
SESSION_REPORTS = "session_reports"
USERS = "users"
STUDENTS = "students"
CLASS_SESSIONS = "class_sessions"

_MAX_FILE_SIZE_BYTES = 100_000_000


def _grants(*pairs: tuple[str, str]) -> tuple[Permission, ...]:
    return tuple(Permission.model_validate({"action": action, "role": role}) for action, role in pairs)


def _string(name: str, size: int, *, required: bool = False, **extra: Any) -> AttributeDefinition:
    return AttributeDefinition(name=name, kind="string", size=size, required=required, **extra)


def _attr(name: str, kind: str, *, required: bool = False, **extra: Any) -> AttributeDefinition:
    return AttributeDefinition(name=name, kind=kind, required=required, **extra)


def _key_index(attribute: str, **extra: Any) -> IndexDefinition:
    return IndexDefinition(key=f"{attribute}_index", kind="key", attribute_names=(attribute,), **extra)


def _learning_materials() -> CollectionDefinition:
    return CollectionDefinition(
        id=LEARNING_MATERIALS,
        display_name="Learning Materials",
        permissions=_grants(
            ("read", "any"),
            ("create", "label:admin"),
            ("create", "label:teacher"),
            ("update", "label:admin"),
            ("update", "label:teacher"),
            ("delete", "label:admin"),
        ),
        document_security=False,
        enabled=True,
        attributes=(
            _string("title", 255, required=True),
            _string("description", 2000),
            _string("category", 100),
            # pdf, video, audio, document
            _string("type", 50, required=True),
            _string("fileUrl", 500),
            _string("fileId", 255),
            _attr("fileSize", "integer"),
            _string("thumbnailUrl", 500),
            _string("courseId", 255),
            _string("uploadedBy", 255, required=True),
            # published, draft, archived
            _string("status", 50, required=True),
            # JSON array
            _string("tags", 1000),
            _attr("viewCount", "integer", default=0),
            _attr("publishedAt", "datetime"),
            _attr("createdAt", "datetime", required=True),
            _attr("updatedAt", "datetime"),
        ),
        indexes=(
            IndexDefinition(key="title_search", kind="fulltext", attribute_names=("title",)),
            _key_index("category"),
            _key_index("status"),
            _key_index("type"),
            _key_index("courseId"),
            _key_index("createdAt", orders=("DESC",)),
        ),
    )


def _session_reports() -> CollectionDefinition:
    return CollectionDefinition(
        id=SESSION_REPORTS,
        display_name="Session Reports",
        permissions=_grants(
            ("read", "any"),
            ("create", "label:teacher"),
            ("create", "label:admin"),
            ("update", "label:teacher"),
            ("update", "label:admin"),
            ("delete", "label:admin"),
        ),
        document_security=False,
        attributes=(
            _string("sessionId", 255, required=True),
            _string("studentId", 255, required=True),
            _string("teacherId", 255, required=True),
            # attended / absent
            _string("attendance", 50, required=True),
            _string("performance", 50),
            _string("summary", 500),
            _string("homework", 2000),
            _string("encouragementMessage", 2000),
            _attr("sessionEnteredAt", "datetime"),
            _attr("sessionEndedAt", "datetime"),
            _attr("teacherLate", "boolean"),
            _attr("lateDurationMinutes", "integer"),
            _attr("createdAt", "datetime", required=True),
            _attr("updatedAt", "datetime", required=True),
        ),
        indexes=(
            _key_index("sessionId"),
            _key_index("studentId"),
            _key_index("teacherId"),
        ),
    )


def _attribute_additions() -> tuple[AttributeAddition, ...]:
    return (
        AttributeAddition(collection_id=USERS, attributes=(_string("linkedStudentId", 255),)),
        AttributeAddition(
            collection_id=STUDENTS,
            attributes=(_string("userId", 255),),
            indexes=(_key_index("userId"),),
        ),
        AttributeAddition(collection_id=CLASS_SESSIONS, attributes=(_attr("enteredAt", "datetime"),)),
    )


def _learning_materials_bucket() -> BucketDefinition:
    return BucketDefinition(
        id=LEARNING_MATERIALS,
        display_name="Learning Materials",
        permissions=_grants(
            ("read", "any"),
            ("create", "label:admin"),
            ("create", "label:teacher"),
            ("update", "label:admin"),
            ("delete", "label:admin"),
        ),
        file_security=False,
        enabled=True,
        max_file_size=_MAX_FILE_SIZE_BYTES,
        allowed_extensions=(),
        compression="gzip",
        encryption=True,
        antivirus=True,
    )


def build_quran_gate_plan() -> SchemaPlan:
    return SchemaPlan(
        collections=(_learning_materials(), _session_reports()),
        attribute_additions=_attribute_additions(),
        bucket=_learning_materials_bucket(),
    )
