"""Pytest fixtures for appwrite_setup.

`FakeControlPlane` stands in for `AppwriteService`: it keeps collections, attributes,
indexes and buckets in memory and answers with the same error codes the real API uses.
Attributes start in "processing" and only become "available" once a waiter lets them
propagate, so an index created too early fails the way it does remotely.
"""

from typing import Any, Optional, Sequence

import pytest

from appwrite_setup.models.schema_plan import SchemaPlan
from appwrite_setup.services.appwrite_service import AppwriteServiceError
from appwrite_setup.services.mutation_executor import MutationExecutor
from appwrite_setup.services.setup.orchestrator import SetupOrchestrator
from appwrite_setup.services.setup.plan_applier import PlanApplier


class FakeControlPlane:
    database_id = "test_db"

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, Any]] = {}
        self.attributes: dict[str, dict[str, dict[str, Any]]] = {}
        self.indexes: dict[str, dict[str, dict[str, Any]]] = {}
        self.buckets: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str, str]] = []
        self._failures: dict[tuple[str, str], AppwriteServiceError] = {}

    # -----------------
    # Test controls
    # -----------------

    def fail(self, op: str, name: str, *, status: int = 500, error_type: str = "general_unknown") -> None:
        self._failures[(op, name)] = AppwriteServiceError(
            f"injected failure for {op} {name}", status=status, error_type=error_type
        )

    def seed_collection(self, collection_id: str, attribute_names: Sequence[str] = ()) -> None:
        self.collections[collection_id] = {"name": collection_id}
        self.attributes[collection_id] = {n: {"kind": "string", "status": "available"} for n in attribute_names}
        self.indexes[collection_id] = {}

    def make_available(self, collection_id: str, attribute_names: Sequence[str]) -> None:
        for name in attribute_names:
            self.attributes[collection_id][name]["status"] = "available"

    def calls_of(self, op: str) -> list[str]:
        return [name for call_op, _, name in self.calls if call_op == op]

    def _record(self, op: str, collection_id: str, name: str) -> None:
        self.calls.append((op, collection_id, name))
        failure = self._failures.get((op, name))
        if failure is not None:
            raise failure

    @staticmethod
    def _conflict(error_type: str) -> AppwriteServiceError:
        return AppwriteServiceError("already exists", status=409, error_type=error_type)

    # -----------------
    # AppwriteService surface
    # -----------------

    async def create_collection(
        self, *, collection_id: str, name: str, permissions: Sequence[str], document_security: bool, enabled: bool
    ) -> dict[str, Any]:
        self._record("collection", collection_id, collection_id)
        if collection_id in self.collections:
            raise self._conflict("collection_already_exists")
        self.collections[collection_id] = {
            "name": name,
            "permissions": list(permissions),
            "documentSecurity": document_security,
            "enabled": enabled,
        }
        self.attributes[collection_id] = {}
        self.indexes[collection_id] = {}
        return {"$id": collection_id}

    async def _create_attribute(self, kind: str, *, collection_id: str, key: str, **kwargs: Any) -> dict[str, Any]:
        self._record("attribute", collection_id, key)
        if collection_id not in self.collections:
            raise AppwriteServiceError("collection not found", status=404, error_type="collection_not_found")
        if key in self.attributes[collection_id]:
            raise self._conflict("attribute_already_exists")
        self.attributes[collection_id][key] = {"kind": kind, "status": "processing", **kwargs}
        return {"key": key, "status": "processing"}

    async def create_string_attribute(self, *, collection_id: str, key: str, **kwargs: Any) -> dict[str, Any]:
        return await self._create_attribute("string", collection_id=collection_id, key=key, **kwargs)

    async def create_integer_attribute(self, *, collection_id: str, key: str, **kwargs: Any) -> dict[str, Any]:
        return await self._create_attribute("integer", collection_id=collection_id, key=key, **kwargs)

    async def create_datetime_attribute(self, *, collection_id: str, key: str, **kwargs: Any) -> dict[str, Any]:
        return await self._create_attribute("datetime", collection_id=collection_id, key=key, **kwargs)

    async def create_boolean_attribute(self, *, collection_id: str, key: str, **kwargs: Any) -> dict[str, Any]:
        return await self._create_attribute("boolean", collection_id=collection_id, key=key, **kwargs)

    async def get_attribute(self, *, collection_id: str, key: str) -> dict[str, Any]:
        attribute = self.attributes.get(collection_id, {}).get(key)
        if attribute is None:
            raise AppwriteServiceError("attribute not found", status=404, error_type="attribute_not_found")
        return {"key": key, "status": attribute["status"]}

    async def create_index(
        self,
        *,
        collection_id: str,
        key: str,
        index_type: str,
        attributes: Sequence[str],
        orders: Optional[Sequence[str]] = None,
    ) -> dict[str, Any]:
        self._record("index", collection_id, key)
        if key in self.indexes[collection_id]:
            raise self._conflict("index_already_exists")
        for name in attributes:
            attribute = self.attributes[collection_id].get(name)
            if attribute is None or attribute["status"] != "available":
                raise AppwriteServiceError(
                    f"attribute not available: {name}", status=400, error_type="attribute_not_available"
                )
        self.indexes[collection_id][key] = {"type": index_type, "attributes": list(attributes), "orders": orders}
        return {"key": key}

    async def create_bucket(self, *, bucket_id: str, **kwargs: Any) -> dict[str, Any]:
        self._record("bucket", "", bucket_id)
        if bucket_id in self.buckets:
            raise self._conflict("storage_bucket_already_exists")
        self.buckets[bucket_id] = kwargs
        return {"$id": bucket_id}


class PropagatingWaiter:
    """Records wait calls and lets the waited-on attributes propagate."""

    def __init__(self, plane: FakeControlPlane) -> None:
        self._plane = plane
        self.calls: list[tuple[str, list[str]]] = []

    async def wait(self, *, collection_id: str, attribute_names: Sequence[str]) -> None:
        self.calls.append((collection_id, list(attribute_names)))
        self._plane.make_available(collection_id, attribute_names)


@pytest.fixture
def plane() -> FakeControlPlane:
    return FakeControlPlane()


@pytest.fixture
def waiter(plane: FakeControlPlane) -> PropagatingWaiter:
    return PropagatingWaiter(plane)


@pytest.fixture
def applier(plane: FakeControlPlane, waiter: PropagatingWaiter) -> PlanApplier:
    return PlanApplier(service=plane, executor=MutationExecutor(), waiter=waiter)


@pytest.fixture
def orchestrator(applier: PlanApplier) -> SetupOrchestrator:
    return SetupOrchestrator(applier=applier, show_progress=False)


@pytest.fixture
def title_plan() -> SchemaPlan:
    """One collection `C` with a required `title` attribute and a fulltext index on it."""

    return SchemaPlan.model_validate(
        {
            "collections": [
                {
                    "id": "C",
                    "display_name": "C",
                    "permissions": [{"action": "read", "role": "any"}],
                    "attributes": [{"name": "title", "kind": "string", "size": 255, "required": True}],
                    "indexes": [{"key": "title_search", "kind": "fulltext", "attribute_names": ["title"]}],
                }
            ]
        }
    )
