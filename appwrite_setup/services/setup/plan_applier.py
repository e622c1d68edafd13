from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from appwrite_setup.models.schema_plan import (
    AttributeAddition,
    AttributeDefinition,
    AttributeKind,
    BucketDefinition,
    CollectionDefinition,
    IndexDefinition,
)
from appwrite_setup.services.appwrite_service import AppwriteService
from appwrite_setup.services.mutation_executor import (
    MutationExecutor,
    MutationOutcome,
    MutationResult,
    RemoteOperation,
)
from appwrite_setup.services.propagation import PropagationError, PropagationWaiter


logger = logging.getLogger(__name__)


class StepKind(str, Enum):
    COLLECTION = "collection"
    ATTRIBUTE = "attribute"
    WAIT = "wait"
    INDEX = "index"
    BUCKET = "bucket"


@dataclass(frozen=True)
class StepResult:
    kind: StepKind
    name: str
    result: MutationResult

    @property
    def outcome(self) -> MutationOutcome:
        return self.result.outcome


@dataclass
class ApplyReport:
    """Per-target record of every step attempted, in order."""

    target: str
    steps: list[StepResult] = field(default_factory=list)
    waited: bool = False

    @property
    def failure(self) -> Optional[StepResult]:
        return next((s for s in self.steps if not s.result.is_success), None)

    @property
    def succeeded(self) -> bool:
        return self.failure is None

    def count(self, outcome: MutationOutcome) -> int:
        return sum(1 for s in self.steps if s.kind is not StepKind.WAIT and s.outcome is outcome)


class PlanApplier:
    """Applies one schema target in dependency order.

    Collection → attributes → (wait, only if something new was created) → indexes.
    The first non-success result stops the target; nothing after it is attempted.
    """

    def __init__(
        self,
        *,
        service: AppwriteService,
        executor: MutationExecutor,
        waiter: PropagationWaiter,
    ) -> None:
        self._service = service
        self._executor = executor
        self._waiter = waiter

    async def _step(
        self,
        report: ApplyReport,
        *,
        kind: StepKind,
        name: str,
        operation: RemoteOperation,
        description: str,
    ) -> bool:
        result = await self._executor.execute(operation, description=description)
        report.steps.append(StepResult(kind=kind, name=name, result=result))
        return result.is_success

    async def apply_collection(self, collection: CollectionDefinition) -> ApplyReport:
        report = ApplyReport(target=f"collection:{collection.id}")
        logger.info("Creating %s collection...", collection.id)

        created = await self._step(
            report,
            kind=StepKind.COLLECTION,
            name=collection.id,
            operation=lambda: self._service.create_collection(
                collection_id=collection.id,
                name=collection.display_name,
                permissions=[p.to_appwrite() for p in collection.permissions],
                document_security=collection.document_security,
                enabled=collection.enabled,
            ),
            description=f"Collection {collection.id} created",
        )
        if not created:
            return report

        await self._apply_attributes_and_indexes(
            report,
            collection_id=collection.id,
            attributes=collection.attributes,
            indexes=collection.indexes,
        )
        return report

    async def apply_addition(self, addition: AttributeAddition) -> ApplyReport:
        report = ApplyReport(target=f"addition:{addition.collection_id}")
        logger.info("Updating %s collection...", addition.collection_id)

        await self._apply_attributes_and_indexes(
            report,
            collection_id=addition.collection_id,
            attributes=addition.attributes,
            indexes=addition.indexes,
        )
        return report

    async def apply_bucket(self, bucket: BucketDefinition) -> ApplyReport:
        report = ApplyReport(target=f"bucket:{bucket.id}")
        logger.info("Creating storage bucket %s...", bucket.id)

        await self._step(
            report,
            kind=StepKind.BUCKET,
            name=bucket.id,
            operation=lambda: self._service.create_bucket(
                bucket_id=bucket.id,
                name=bucket.display_name,
                permissions=[p.to_appwrite() for p in bucket.permissions],
                file_security=bucket.file_security,
                enabled=bucket.enabled,
                maximum_file_size=bucket.max_file_size,
                allowed_file_extensions=list(bucket.allowed_extensions),
                compression=bucket.compression.value,
                encryption=bucket.encryption,
                antivirus=bucket.antivirus,
            ),
            description=f"Storage bucket {bucket.id} created",
        )
        return report

    async def _apply_attributes_and_indexes(
        self,
        report: ApplyReport,
        *,
        collection_id: str,
        attributes: Sequence[AttributeDefinition],
        indexes: Sequence[IndexDefinition],
    ) -> None:
        applied: list[str] = []
        for attribute in attributes:
            ok = await self._step(
                report,
                kind=StepKind.ATTRIBUTE,
                name=attribute.name,
                operation=self._attribute_operation(collection_id, attribute),
                description=f"Attribute {attribute.name} created on {collection_id}",
            )
            if not ok:
                return
            if report.steps[-1].result.is_applied:
                applied.append(attribute.name)

        # Every attribute already existed: propagation happened in an earlier run.
        if applied and indexes:
            if not await self._wait(report, collection_id=collection_id, attribute_names=applied):
                return

        for index in indexes:
            ok = await self._step(
                report,
                kind=StepKind.INDEX,
                name=index.key,
                operation=self._index_operation(collection_id, index),
                description=f"Index {index.key} created on {collection_id}",
            )
            if not ok:
                return

    async def _wait(self, report: ApplyReport, *, collection_id: str, attribute_names: list[str]) -> bool:
        report.waited = True
        try:
            await self._waiter.wait(collection_id=collection_id, attribute_names=attribute_names)
        except PropagationError as exc:
            logger.error("Attributes on %s did not become available: %s", collection_id, exc)
            report.steps.append(
                StepResult(
                    kind=StepKind.WAIT,
                    name=collection_id,
                    result=MutationResult.fatal(f"Attributes available on {collection_id}", exc),
                )
            )
            return False
        return True

    def _attribute_operation(self, collection_id: str, attribute: AttributeDefinition) -> RemoteOperation:
        svc = self._service
        if attribute.kind is AttributeKind.STRING:
            return lambda: svc.create_string_attribute(
                collection_id=collection_id,
                key=attribute.name,
                size=attribute.size or 0,
                required=attribute.required,
                default=attribute.default,
                array=attribute.array,
            )
        if attribute.kind is AttributeKind.INTEGER:
            return lambda: svc.create_integer_attribute(
                collection_id=collection_id,
                key=attribute.name,
                required=attribute.required,
                min=attribute.min,
                max=attribute.max,
                default=attribute.default,
                array=attribute.array,
            )
        if attribute.kind is AttributeKind.DATETIME:
            return lambda: svc.create_datetime_attribute(
                collection_id=collection_id,
                key=attribute.name,
                required=attribute.required,
                default=attribute.default,
                array=attribute.array,
            )
        if attribute.kind is AttributeKind.BOOLEAN:
            return lambda: svc.create_boolean_attribute(
                collection_id=collection_id,
                key=attribute.name,
                required=attribute.required,
                default=attribute.default,
                array=attribute.array,
            )
        raise ValueError(f"Unsupported attribute kind: {attribute.kind!r}")

    def _index_operation(self, collection_id: str, index: IndexDefinition) -> RemoteOperation:
        orders = [o.value for o in index.orders] if index.orders is not None else None
        return lambda: self._service.create_index(
            collection_id=collection_id,
            key=index.key,
            index_type=index.kind.value,
            attributes=list(index.attribute_names),
            orders=orders,
        )
